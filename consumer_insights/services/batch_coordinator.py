"""Sequential, rate-spaced deep analysis over a set of documents."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from consumer_insights.agents.deep_analyzer import DeepAnalyzer
from consumer_insights.errors import ConfigurationError, PipelineError
from consumer_insights.models.records import Document
from consumer_insights.services import logger as log_service
from consumer_insights.services.rate_limiter import IntervalRateLimiter
from consumer_insights.services.supabase import SupabaseStore

SUCCESS = "success"
FAILED = "failed"
ERROR = "error"


@dataclass
class BatchItemResult:
    id: str
    status: str
    title: str | None = None
    detail: Any = None


@dataclass
class BatchReport:
    message: str
    results: list[BatchItemResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.status == SUCCESS)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [
                {"id": r.id, "title": r.title, "status": r.status, "detail": r.detail}
                for r in self.results
            ],
        }


class BatchCoordinator:
    def __init__(
        self,
        *,
        store: SupabaseStore,
        analyzer: DeepAnalyzer,
        limiter_factory: Callable[[], IntervalRateLimiter],
        page_size: int = 10,
    ):
        self.store = store
        self.analyzer = analyzer
        self.limiter_factory = limiter_factory
        self.page_size = page_size

    async def _resolve(
        self,
        document_ids: list[str] | None,
        keyword: str | None,
        user_id: str | None,
    ) -> tuple[list[Document], list[BatchItemResult]]:
        if document_ids:
            requested = list(dict.fromkeys(document_ids))
            found = {doc.id: doc for doc in await self.store.get_documents(requested)}
            missing = [
                BatchItemResult(id=doc_id, status=FAILED, detail={"reason": "not_found"})
                for doc_id in requested
                if doc_id not in found
            ]
            return [found[doc_id] for doc_id in requested if doc_id in found], missing
        documents = await self.store.list_pending(limit=self.page_size, user_id=user_id, keyword=keyword)
        return documents, []

    async def run(
        self,
        *,
        document_ids: list[str] | None = None,
        keyword: str | None = None,
        user_id: str | None = None,
    ) -> BatchReport:
        documents, missing = await self._resolve(document_ids, keyword, user_id)
        if not documents and not missing:
            return BatchReport(message="No pending results to process")

        report = await self.process(documents)
        report.results.extend(missing)
        return report

    async def process(self, documents: list[Document], *, message: str = "Batch processing completed") -> BatchReport:
        """Analyze documents one after another, isolating per-item failures.

        Missing credentials abort the whole run before any document is touched.
        """
        if documents:
            self.analyzer.ensure_ready()
        limiter = self.limiter_factory()
        report = BatchReport(message=message)
        for doc in documents:
            await limiter.acquire()
            try:
                outcome = await self.analyzer.analyze(doc.id)
            except ConfigurationError:
                raise
            except PipelineError as e:
                report.results.append(
                    BatchItemResult(id=doc.id, title=doc.title, status=FAILED, detail=e.to_payload())
                )
            except Exception as e:
                log_service.log_event(
                    event_type="batch_item_error",
                    message=str(e),
                    document_id=doc.id,
                )
                report.results.append(
                    BatchItemResult(id=doc.id, title=doc.title, status=ERROR, detail={"error": str(e)})
                )
            else:
                report.results.append(
                    BatchItemResult(id=doc.id, title=doc.title, status=SUCCESS, detail=outcome.to_dict())
                )

        log_service.log_pipeline_step(
            "batch",
            "completed",
            total=report.total,
            succeeded=report.succeeded,
            failed=report.failed,
        )
        return report
