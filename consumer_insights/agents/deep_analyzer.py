"""Per-document crawl + LLM analysis, the sole owner of document status writes."""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from consumer_insights.agents.base import BaseAgent, validate_payload
from consumer_insights.config import Settings
from consumer_insights.errors import DocumentNotFoundError, EmptyContentError, PipelineError
from consumer_insights.llm_client import OpenRouterClientAdapter
from consumer_insights.models.analysis import DeepAnalysisResult
from consumer_insights.models.events import StatusChangeEvent
from consumer_insights.models.records import Document, DocumentAnalysis, DocumentStatus, Sentiment
from consumer_insights.services import logger as log_service
from consumer_insights.services.prompt_store import render_prompt
from consumer_insights.services.status_events import StatusBroadcaster
from consumer_insights.services.supabase import SupabaseStore
from consumer_insights.tools.firecrawl import FirecrawlClient

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_published_date(value: Any) -> datetime | None:
    """Strict ``YYYY-MM-DD`` to a UTC midnight timestamp; anything else is None."""
    if not isinstance(value, str) or not _ISO_DATE.match(value.strip()):
        return None
    try:
        day = date.fromisoformat(value.strip())
    except ValueError:
        return None
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


@dataclass
class AnalysisOutcome:
    document_id: str
    status: DocumentStatus
    analysis: DocumentAnalysis | None = None
    result: dict[str, Any] = field(default_factory=dict)
    published_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "searchResultId": self.document_id,
            "status": self.status.value,
            "analysis": self.result,
            "articlePublishedAt": self.published_at.isoformat() if self.published_at else None,
        }


class DeepAnalyzer(BaseAgent):
    name = "deep_analyzer"
    max_tokens = 2048

    def __init__(
        self,
        client: OpenRouterClientAdapter,
        model: str,
        *,
        store: SupabaseStore,
        crawler: FirecrawlClient,
        broadcaster: StatusBroadcaster,
        settings: Settings,
        today: Callable[[], date] | None = None,
    ):
        super().__init__(client, model)
        self.store = store
        self.crawler = crawler
        self.broadcaster = broadcaster
        self.settings = settings
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    async def _transition(
        self,
        doc: Document,
        status: DocumentStatus,
        *,
        published_at: datetime | None = None,
        detail: str | None = None,
    ) -> None:
        previous = doc.status
        await self.store.update_status(doc.id, status, article_published_at=published_at)
        doc.status = status
        if published_at is not None:
            doc.article_published_at = published_at
        self.broadcaster.publish(
            StatusChangeEvent(
                document_id=doc.id,
                keyword=doc.keyword,
                status=status,
                previous_status=previous,
                detail=detail,
            )
        )

    async def _mark_failed(self, doc: Document, exc: Exception) -> None:
        try:
            await self._transition(doc, DocumentStatus.FAILED, detail=str(exc)[:200])
        except Exception as e:
            log_service.log_db_operation("update_status", "search_results", "error", details=doc.id, error=str(e))

    async def _summarize(self, doc: Document, content: str) -> DeepAnalysisResult:
        data = await self._complete_json(
            render_prompt("deep_analysis.system"),
            render_prompt(
                "deep_analysis.user",
                title=doc.title,
                url=doc.url,
                content=content[: self.settings.analysis_prompt_chars],
                today=self._today().isoformat(),
            ),
        )
        return validate_payload(DeepAnalysisResult, data, caller=self.name)

    def ensure_ready(self) -> None:
        """Raise ConfigurationError when the crawler or the LLM gateway lacks credentials."""
        self.crawler.ensure_configured()
        self.client.ensure_configured()

    async def analyze(self, document_id: str) -> AnalysisOutcome:
        """Crawl, analyze and persist one document.

        Missing credentials raise before any status is written. Any failure
        after the document is found leaves it ``failed`` and re-raises; the
        caller decides whether the failure is per-item.
        """
        self.ensure_ready()
        doc = await self.store.get_document(document_id)
        if doc is None:
            raise DocumentNotFoundError(f"Search result {document_id} not found")

        await self._transition(doc, DocumentStatus.CRAWLING)
        try:
            page = await self.crawler.extract(doc.url)
            if page.is_empty:
                raise EmptyContentError("No content retrieved", details={"url": doc.url})

            result = await self._summarize(doc, page.content)
            analysis = DocumentAnalysis(
                search_result_id=doc.id,
                is_consumer_review=result.is_consumer_review,
                sentiment=Sentiment(result.sentiment),
                category=result.category,
                key_topics=result.key_topics,
                summary=result.summary,
                structured_data=result.structured_data.model_dump(by_alias=True, exclude_none=True),
                full_content=page.content[: self.settings.stored_content_chars],
            )
            await self.store.upsert_analysis(analysis)

            published_at = parse_published_date(result.published_date)
            if result.published_date and published_at is None:
                log_service.log_event(
                    event_type="published_date_rejected",
                    message="model returned an unusable publishedDate",
                    document_id=doc.id,
                    value=result.published_date,
                )
            await self._transition(doc, DocumentStatus.ANALYZED, published_at=published_at)
        except Exception as exc:
            await self._mark_failed(doc, exc)
            log_service.log_pipeline_step(
                "deep_analysis",
                "failed",
                document_id=doc.id,
                reason=exc.reason if isinstance(exc, PipelineError) else type(exc).__name__,
                error=str(exc),
            )
            raise

        log_service.log_pipeline_step(
            "deep_analysis",
            "completed",
            document_id=doc.id,
            content_chars=len(page.content),
            published_at=published_at,
        )
        return AnalysisOutcome(
            document_id=doc.id,
            status=DocumentStatus.ANALYZED,
            analysis=analysis,
            result=result.model_dump(by_alias=True),
            published_at=published_at,
        )
