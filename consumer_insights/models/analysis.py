"""Validated shapes of the JSON documents returned by the LLM stages.

Field aliases keep the camelCase keys the providers emit and the dashboard
reads, so reports are stored with ``model_dump(by_alias=True)``.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# --- Relevance filter ---


class FilterDecision(_Payload):
    is_valid: bool = Field(alias="isValid")
    reason: str = ""


# --- Deep analysis ---


class StructuredData(_Payload):
    product_mentioned: str | None = Field(default=None, alias="productMentioned")
    brand_mentioned: str | None = Field(default=None, alias="brandMentioned")
    price_discussed: bool | None = Field(default=None, alias="priceDiscussed")
    recommendation_level: int | None = Field(default=None, alias="recommendationLevel", ge=1, le=5)
    main_issues: list[str] = Field(default_factory=list, alias="mainIssues")
    main_praises: list[str] = Field(default_factory=list, alias="mainPraises")


class DeepAnalysisResult(_Payload):
    is_consumer_review: bool = Field(alias="isConsumerReview")
    sentiment: Literal["positive", "negative", "neutral", "mixed"]
    category: str | None = None
    key_topics: list[str] = Field(default_factory=list, alias="keyTopics")
    summary: str | None = None
    published_date: str | None = Field(default=None, alias="publishedDate")
    structured_data: StructuredData = Field(default_factory=StructuredData, alias="structuredData")


# --- First-stage aggregate ---

CATEGORY_KEYS = ("product", "service", "store", "price", "quality")


class SentimentDistribution(_Payload):
    positive: float = Field(ge=0, le=100)
    neutral: float = Field(ge=0, le=100)
    negative: float = Field(ge=0, le=100)


class TopicCount(_Payload):
    topic: str
    count: int


class CategoryBreakdown(_Payload):
    mentions: int
    sentiment: str
    keywords: list[str] = Field(default_factory=list)


class KeyOpinion(_Payload):
    opinion: str
    sentiment: str
    frequency: int


class GraphNode(_Payload):
    id: str
    value: float
    category: str | None = None


class GraphLink(_Payload):
    source: str
    target: str
    value: float


class NetworkGraph(_Payload):
    nodes: list[GraphNode] = Field(default_factory=list)
    links: list[GraphLink] = Field(default_factory=list)


class QuantitativeMetrics(_Payload):
    total_mentions: int = Field(alias="totalMentions")
    avg_sentiment_score: float = Field(alias="avgSentimentScore", ge=-1.0, le=1.0)
    engagement_rate: float = Field(alias="engagementRate")
    trend_direction: Literal["상승", "하락", "안정"] = Field(alias="trendDirection")
    growth_rate: float = Field(alias="growthRate")


class FirstStageAnalysis(_Payload):
    sentiment: SentimentDistribution
    top_keywords: list[str] = Field(alias="topKeywords")
    main_topics: list[TopicCount] = Field(alias="mainTopics")
    category_analysis: dict[str, CategoryBreakdown] = Field(alias="categoryAnalysis")
    key_opinions: list[KeyOpinion] = Field(alias="keyOpinions")
    network_graph: NetworkGraph = Field(alias="networkGraph")
    quantitative_metrics: QuantitativeMetrics = Field(alias="quantitativeMetrics")
    summary: str

    @field_validator("category_analysis")
    @classmethod
    def _all_categories_present(cls, value: dict[str, CategoryBreakdown]) -> dict[str, CategoryBreakdown]:
        missing = [key for key in CATEGORY_KEYS if key not in value]
        if missing:
            raise ValueError(f"categoryAnalysis missing: {', '.join(missing)}")
        return value


# --- Advanced insights ---


class ConsumerPersona(_Payload):
    name: str
    demographics: str = ""
    pain_points: list[str] = Field(default_factory=list, alias="painPoints")
    desires: list[str] = Field(default_factory=list)
    behavior_patterns: str = Field(default="", alias="behaviorPatterns")


class CompetitiveLandscape(_Payload):
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    market_position: str = Field(default="", alias="marketPosition")
    differentiators: list[str] = Field(default_factory=list)


class ActionItem(_Payload):
    priority: Literal["high", "medium", "low"]
    action: str
    expected_impact: str = Field(default="", alias="expectedImpact")
    timeframe: str = ""


class TrendPredictions(_Payload):
    emerging: list[str] = Field(default_factory=list)
    declining: list[str] = Field(default_factory=list)
    stable: list[str] = Field(default_factory=list)
    forecast: str = ""


class SentimentTrends(_Payload):
    overall: str = ""
    trajectory: str = ""
    key_drivers: list[str] = Field(default_factory=list, alias="keyDrivers")


class AdvancedInsightPayload(_Payload):
    executive_summary: str = Field(alias="executiveSummary")
    consumer_personas: list[ConsumerPersona] = Field(alias="consumerPersonas")
    competitive_landscape: CompetitiveLandscape = Field(alias="competitiveLandscape")
    action_items: list[ActionItem] = Field(alias="actionItems")
    trend_predictions: TrendPredictions = Field(alias="trendPredictions")
    opportunities: list[str] = Field(default_factory=list)
    threats: list[str] = Field(default_factory=list)
    sentiment_trends: SentimentTrends = Field(alias="sentimentTrends")


# --- Uploaded review insights ---


class SentimentCount(_Payload):
    label: Literal["긍정", "부정", "중립"]
    count: int = Field(ge=0)


class ReviewGraphNode(_Payload):
    id: str
    label: str = ""


class ReviewGraphEdge(_Payload):
    source: str
    target: str


class ReviewNetworkGraph(_Payload):
    nodes: list[ReviewGraphNode] = Field(default_factory=list)
    edges: list[ReviewGraphEdge] = Field(default_factory=list)


class ReviewInsights(_Payload):
    sentiment: list[SentimentCount] = Field(min_length=1)
    topics: list[TopicCount] = Field(default_factory=list)
    personas: list[str] = Field(default_factory=list)
    network_graph: ReviewNetworkGraph = Field(default_factory=ReviewNetworkGraph, alias="networkGraph")


# --- Keyword tooling ---


class GeneratedKeyword(_Payload):
    search_query: str = Field(alias="searchQuery", min_length=1)
    display_name: str = Field(alias="displayName", min_length=1)


class GeneratedKeywords(_Payload):
    keywords: list[GeneratedKeyword] = Field(min_length=1)


class ExtractedQuery(_Payload):
    search_query: str = Field(alias="searchQuery", min_length=1)
    keywords: list[str] = Field(default_factory=list)
