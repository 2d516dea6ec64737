from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from consumer_insights.models.records import AcceptedCandidate, Document
from consumer_insights.services import logger as log_service
from consumer_insights.services.supabase import SupabaseStore


@dataclass
class IngestionReport:
    total_found: int
    valid_results: int
    saved_to_database: int
    failed: int = 0
    documents: list[Document] = field(default_factory=list)

    def to_counts(self) -> dict[str, int]:
        return {
            "totalFound": self.total_found,
            "validResults": self.valid_results,
            "savedToDatabase": self.saved_to_database,
        }


class IngestionWriter:
    """Persists filter-accepted candidates as ``pending`` documents."""

    def __init__(self, store: SupabaseStore):
        self.store = store

    async def write(
        self,
        accepted: list[AcceptedCandidate],
        *,
        keyword: str,
        total_found: int,
        user_id: str | None = None,
        project_id: str | None = None,
        search_period: str | None = None,
    ) -> IngestionReport:
        seen: set[str] = set()
        unique: list[AcceptedCandidate] = []
        for item in accepted:
            if item.candidate.link in seen:
                continue
            seen.add(item.candidate.link)
            unique.append(item)

        rows = []
        for item in unique:
            row = {
                "keyword": keyword,
                "url": item.candidate.link,
                "title": item.candidate.title,
                "snippet": item.candidate.snippet,
                "source_domain": item.candidate.display_link,
                "user_id": user_id,
                "project_id": project_id,
                "search_period": search_period,
            }
            rows.append({k: v for k, v in row.items() if v is not None})

        # Inserts are independent; one failure must not sink the others.
        results = await asyncio.gather(
            *(self.store.insert_document(row) for row in rows),
            return_exceptions=True,
        )

        documents: list[Document] = []
        failed = 0
        for row, result in zip(rows, results):
            if isinstance(result, BaseException):
                failed += 1
                log_service.log_db_operation(
                    "insert", "search_results", "error", details=row["url"], error=str(result)
                )
            else:
                documents.append(result)

        report = IngestionReport(
            total_found=total_found,
            valid_results=len(accepted),
            saved_to_database=len(documents),
            failed=failed,
            documents=documents,
        )
        log_service.log_pipeline_step("ingest", "completed", keyword=keyword, failed=failed, **report.to_counts())
        return report
