from __future__ import annotations

from pydantic import BaseModel, Field

from consumer_insights.models.records import SearchPeriod


# --- Requests ---


class SearchRequest(BaseModel):
    base_term: str | None = None
    addendum: str | None = None
    keyword_id: str | None = None  # resolves base_term from the keyword registry
    mode: str = "compose"  # compose | natural
    period: SearchPeriod | None = None
    user_id: str | None = None
    project_id: str | None = None


class GuidedSearchRequest(BaseModel):
    company: str = Field(min_length=1)
    product: str = Field(min_length=1)
    info_types: list[str] = Field(default_factory=list)
    period: SearchPeriod | None = None
    user_id: str | None = None
    project_id: str | None = None


class KeywordGenerationRequest(BaseModel):
    company: str = Field(min_length=1)
    product: str = Field(min_length=1)


class QueryExtractionRequest(BaseModel):
    query: str = Field(min_length=1)


class BatchRequest(BaseModel):
    document_ids: list[str] | None = None
    keyword: str | None = None
    user_id: str | None = None


class FirstStageRequest(BaseModel):
    user_id: str
    document_ids: list[str] | None = None
    keyword: str | None = None
    project_id: str | None = None
    search_period: str | None = None


class AdvancedInsightRequest(BaseModel):
    keyword: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    project_id: str | None = None
    search_period: str | None = None


class MaintenanceRequest(BaseModel):
    user_id: str | None = None


class ReviewInsightsRequest(BaseModel):
    reviews: list[str] = Field(default_factory=list)


# --- Responses ---


class SearchResponse(BaseModel):
    message: str
    keyword: str
    displayName: str
    totalFound: int
    validResults: int
    savedToDatabase: int
    results: list[dict] = Field(default_factory=list)


class BatchItemResponse(BaseModel):
    id: str
    title: str | None = None
    status: str
    detail: dict | str | None = None


class BatchResponse(BaseModel):
    message: str
    total: int
    succeeded: int
    failed: int
    results: list[BatchItemResponse] = Field(default_factory=list)


class FirstStageResponse(BaseModel):
    cache_key: str
    cached: bool
    result_count: int
    analysis_data: dict
    trend_data: list[dict]


class BackfillResponse(BaseModel):
    message: str
    total: int
    updated: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
