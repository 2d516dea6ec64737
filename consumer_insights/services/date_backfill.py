"""Recovery of missing publish dates for stored documents."""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from consumer_insights.models.records import DocumentStatus
from consumer_insights.services import logger as log_service
from consumer_insights.services.batch_coordinator import SUCCESS, BatchCoordinator
from consumer_insights.services.supabase import SupabaseStore

KST = timezone(timedelta(hours=9))

ABSOLUTE_PATTERNS = (
    re.compile(r"(\d{4})년\s*(\d{1,2})월\s*(\d{1,2})일"),
    re.compile(r"(\d{4})[.-](\d{1,2})[.-](\d{1,2})"),
    re.compile(r"(\d{2})[.-](\d{1,2})[.-](\d{1,2})"),
)

RELATIVE_PATTERNS = (
    (re.compile(r"(\d+)일\s*전"), "days"),
    (re.compile(r"(\d+)시간\s*전"), "hours"),
    (re.compile(r"(\d+)분\s*전"), "minutes"),
)

REANALYSIS_STATUSES = (DocumentStatus.PENDING, DocumentStatus.ANALYZED)


def extract_date(snippet: str | None, now: datetime | None = None) -> datetime | None:
    """Best-effort publish date from snippet text.

    Absolute forms are tried in order and resolve to midnight KST; a match
    that is not a real calendar date falls through to the next pattern.
    Relative forms (``3일 전``) are resolved against ``now``.
    """
    if not snippet:
        return None

    for pattern in ABSOLUTE_PATTERNS:
        match = pattern.search(snippet)
        if not match:
            continue
        year, month, day = (int(g) for g in match.groups())
        if year < 100:
            year += 2000
        try:
            return datetime(year, month, day, tzinfo=KST)
        except ValueError:
            continue

    for pattern, unit in RELATIVE_PATTERNS:
        match = pattern.search(snippet)
        if match:
            reference = now or datetime.now(KST)
            return reference - timedelta(**{unit: int(match.group(1))})

    return None


@dataclass
class BackfillReport:
    message: str
    total: int = 0
    updated: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "total": self.total,
            "updated": self.updated,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": self.errors,
        }


class DateBackfillRecoverer:
    def __init__(
        self,
        *,
        store: SupabaseStore,
        batch: BatchCoordinator,
        reanalysis_limit: int = 50,
        error_sample: int = 10,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.batch = batch
        self.reanalysis_limit = reanalysis_limit
        self.error_sample = error_sample
        self._clock = clock or (lambda: datetime.now(KST))

    async def extract_from_snippets(self, *, user_id: str | None = None) -> BackfillReport:
        """Heuristic pass: only ``article_published_at`` is written."""
        documents = await self.store.list_missing_dates(user_id=user_id)
        if not documents:
            return BackfillReport(message="No results to update")

        report = BackfillReport(message="Date extraction completed", total=len(documents))
        now = self._clock()
        for doc in documents:
            found = extract_date(doc.snippet, now=now)
            if found is None:
                continue
            try:
                await self.store.set_published_at(doc.id, found)
            except Exception as e:
                report.failed += 1
                report.errors.append(f"{doc.id}: {e}")
                log_service.log_db_operation("update", "search_results", "error", details=doc.id, error=str(e))
            else:
                report.updated += 1

        report.succeeded = report.updated
        report.errors = report.errors[: self.error_sample]
        log_service.log_pipeline_step(
            "date_extraction",
            "completed",
            total=report.total,
            updated=report.updated,
            failed=report.failed,
        )
        return report

    async def reanalyze_missing(self, *, user_id: str | None = None) -> BackfillReport:
        """Fallback pass: rerun deep analysis for undated pending/analyzed documents."""
        documents = await self.store.list_missing_dates(
            user_id=user_id,
            statuses=REANALYSIS_STATUSES,
            limit=self.reanalysis_limit,
        )
        if not documents:
            return BackfillReport(message="No results to reanalyze")

        batch = await self.batch.process(documents, message="Reanalysis batch completed")
        titles = {doc.id: doc.title for doc in documents}
        errors = [
            f"{titles.get(item.id, item.id)}: {_describe(item.detail)}"
            for item in batch.results
            if item.status != SUCCESS
        ]
        return BackfillReport(
            message=batch.message,
            total=batch.total,
            succeeded=batch.succeeded,
            failed=batch.failed,
            errors=errors[: self.error_sample],
        )


def _describe(detail: Any) -> str:
    if isinstance(detail, dict):
        return str(detail.get("error") or detail)
    return str(detail)
