"""Row-level records for the Supabase tables the pipeline reads and writes."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    PENDING = "pending"
    CRAWLING = "crawling"
    ANALYZED = "analyzed"
    FAILED = "failed"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    MIXED = "mixed"


class SearchPeriod(str, Enum):
    D7 = "d7"
    M1 = "m1"
    M3 = "m3"
    M6 = "m6"
    Y1 = "y1"


class KeywordSource(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"
    GUIDED_SEARCH = "guided_search"
    AUTO_GENERATED = "auto_generated"


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass
class SearchCandidate:
    """One item returned by the search index, before filtering."""

    link: str
    title: str
    snippet: str
    display_link: str

    def to_dict(self) -> dict[str, str]:
        return {
            "link": self.link,
            "title": self.title,
            "snippet": self.snippet,
            "displayLink": self.display_link,
        }


@dataclass
class AcceptedCandidate:
    candidate: SearchCandidate
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {
            "url": self.candidate.link,
            "title": self.candidate.title,
            "snippet": self.candidate.snippet,
            "source_domain": self.candidate.display_link,
            "reason": self.reason,
        }


@dataclass
class Document:
    id: str
    keyword: str
    url: str
    title: str
    snippet: str = ""
    source_domain: str | None = None
    status: DocumentStatus = DocumentStatus.PENDING
    article_published_at: datetime | None = None
    project_id: str | None = None
    user_id: str | None = None
    search_period: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Document":
        status = row.get("status") or DocumentStatus.PENDING.value
        return cls(
            id=str(row["id"]),
            keyword=row.get("keyword") or "",
            url=row.get("url") or "",
            title=row.get("title") or "",
            snippet=row.get("snippet") or "",
            source_domain=row.get("source_domain"),
            status=DocumentStatus(status),
            article_published_at=parse_timestamp(row.get("article_published_at")),
            project_id=row.get("project_id"),
            user_id=row.get("user_id"),
            search_period=row.get("search_period"),
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )

    @property
    def effective_date(self) -> datetime | None:
        return self.article_published_at or self.created_at


@dataclass
class DocumentAnalysis:
    search_result_id: str
    is_consumer_review: bool
    sentiment: Sentiment | None
    category: str | None = None
    key_topics: list[str] = field(default_factory=list)
    summary: str | None = None
    structured_data: dict[str, Any] = field(default_factory=dict)
    full_content: str | None = None
    id: str | None = None
    created_at: datetime | None = None
    # Joined from search_results when listing analyses by keyword.
    document: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "DocumentAnalysis":
        sentiment = row.get("sentiment")
        joined = row.get("search_results")
        return cls(
            id=row.get("id"),
            search_result_id=str(row.get("search_result_id")),
            is_consumer_review=bool(row.get("is_consumer_review")),
            sentiment=Sentiment(sentiment) if sentiment else None,
            category=row.get("category"),
            key_topics=list(row.get("key_topics") or []),
            summary=row.get("summary"),
            structured_data=dict(row.get("structured_data") or {}),
            full_content=row.get("full_content"),
            created_at=parse_timestamp(row.get("created_at")),
            document=joined if isinstance(joined, dict) else {},
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "search_result_id": self.search_result_id,
            "is_consumer_review": self.is_consumer_review,
            "sentiment": self.sentiment.value if self.sentiment else None,
            "category": self.category,
            "key_topics": self.key_topics,
            "summary": self.summary,
            "structured_data": self.structured_data,
            "full_content": self.full_content,
        }


@dataclass
class CacheEntry:
    cache_key: str
    user_id: str
    analysis_data: dict[str, Any]
    trend_data: list[dict[str, Any]]
    result_count: int
    keyword: str | None = None
    search_period: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CacheEntry":
        return cls(
            cache_key=row["cache_key"],
            user_id=str(row["user_id"]),
            analysis_data=dict(row.get("analysis_data") or {}),
            trend_data=list(row.get("trend_data") or []),
            result_count=int(row.get("result_count") or 0),
            keyword=row.get("keyword"),
            search_period=row.get("search_period"),
            created_at=parse_timestamp(row.get("created_at")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "cache_key": self.cache_key,
            "user_id": self.user_id,
            "analysis_data": self.analysis_data,
            "trend_data": self.trend_data,
            "result_count": self.result_count,
            "keyword": self.keyword,
            "search_period": self.search_period,
        }


@dataclass
class Keyword:
    keyword: str
    user_id: str | None = None
    id: str | None = None
    category: str | None = None
    display_name: str | None = None
    source: str | None = None
    search_count: int = 0
    last_searched_at: datetime | None = None
    project_id: str | None = None
    is_active: bool = True
    is_favorite: bool = False

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Keyword":
        return cls(
            id=row.get("id"),
            keyword=row["keyword"],
            user_id=row.get("user_id"),
            category=row.get("category"),
            display_name=row.get("display_name"),
            source=row.get("source"),
            search_count=int(row.get("search_count") or 0),
            last_searched_at=parse_timestamp(row.get("last_searched_at")),
            project_id=row.get("project_id"),
            is_active=row.get("is_active") is not False,
            is_favorite=bool(row.get("is_favorite")),
        )
