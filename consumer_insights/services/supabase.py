"""Supabase-backed document store.

Tables: ``search_results`` (documents), ``analysis_results`` (per-document
analyses), ``analysis_cache`` (first-stage cache), ``advanced_insights`` and
``keywords``. The Supabase query builder is blocking, so every ``execute()``
runs in a worker thread.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

from supabase import Client, create_client

from consumer_insights.config import Settings
from consumer_insights.errors import ConfigurationError
from consumer_insights.models.records import (
    CacheEntry,
    Document,
    DocumentAnalysis,
    DocumentStatus,
    Keyword,
)
from consumer_insights.services import logger as log_service

DOCUMENTS = "search_results"
ANALYSES = "analysis_results"
CACHE = "analysis_cache"
INSIGHTS = "advanced_insights"
KEYWORDS = "keywords"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseStore:
    def __init__(self, settings: Settings, client: Client | None = None):
        self._settings = settings
        self._client = client

    def client(self) -> Client:
        if self._client is None:
            if not self._settings.supabase_url or not self._settings.supabase_service_role_key:
                raise ConfigurationError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are not configured")
            self._client = create_client(
                self._settings.supabase_url,
                self._settings.supabase_service_role_key,
            )
        return self._client

    async def _execute(self, query: Any) -> Any:
        """Run blocking Supabase query execution in a worker thread."""
        return await asyncio.to_thread(query.execute)

    # --- Documents ---

    async def insert_document(self, row: dict[str, Any]) -> Document:
        payload = {"status": DocumentStatus.PENDING.value, **row}
        result = await self._execute(self.client().table(DOCUMENTS).insert(payload))
        log_service.log_db_operation("insert", DOCUMENTS, "success", details=row.get("url"))
        return Document.from_row(result.data[0])

    async def get_document(self, document_id: str) -> Document | None:
        result = await self._execute(
            self.client().table(DOCUMENTS).select("*").eq("id", document_id)
        )
        return Document.from_row(result.data[0]) if result.data else None

    async def get_documents(self, document_ids: list[str]) -> list[Document]:
        if not document_ids:
            return []
        result = await self._execute(
            self.client().table(DOCUMENTS).select("*").in_("id", list(document_ids))
        )
        return [Document.from_row(row) for row in result.data or []]

    async def list_documents(
        self,
        *,
        user_id: str | None = None,
        keyword: str | None = None,
        project_id: str | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        query = self.client().table(DOCUMENTS).select("*")
        if user_id:
            query = query.eq("user_id", user_id)
        if keyword:
            query = query.eq("keyword", keyword)
        if project_id:
            query = query.eq("project_id", project_id)
        query = query.order("created_at", desc=True)
        if limit:
            query = query.limit(limit)
        result = await self._execute(query)
        return [Document.from_row(row) for row in result.data or []]

    async def list_pending(
        self,
        *,
        limit: int,
        user_id: str | None = None,
        keyword: str | None = None,
    ) -> list[Document]:
        query = (
            self.client()
            .table(DOCUMENTS)
            .select("*")
            .eq("status", DocumentStatus.PENDING.value)
        )
        if user_id:
            query = query.eq("user_id", user_id)
        if keyword:
            query = query.eq("keyword", keyword)
        result = await self._execute(query.order("created_at", desc=True).limit(limit))
        return [Document.from_row(row) for row in result.data or []]

    async def list_missing_dates(
        self,
        *,
        user_id: str | None = None,
        statuses: tuple[DocumentStatus, ...] | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        query = self.client().table(DOCUMENTS).select("*").is_("article_published_at", "null")
        if user_id:
            query = query.eq("user_id", user_id)
        if statuses:
            query = query.in_("status", [s.value for s in statuses])
        query = query.order("created_at", desc=True)
        if limit:
            query = query.limit(limit)
        result = await self._execute(query)
        return [Document.from_row(row) for row in result.data or []]

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        *,
        article_published_at: datetime | None = None,
    ) -> None:
        update: dict[str, Any] = {"status": status.value, "updated_at": _utc_now_iso()}
        if article_published_at is not None:
            update["article_published_at"] = article_published_at.isoformat()
        await self._execute(self.client().table(DOCUMENTS).update(update).eq("id", document_id))
        log_service.log_db_operation("update_status", DOCUMENTS, "success", details=f"{document_id}:{status.value}")

    async def set_published_at(self, document_id: str, published_at: datetime) -> None:
        await self._execute(
            self.client()
            .table(DOCUMENTS)
            .update({"article_published_at": published_at.isoformat(), "updated_at": _utc_now_iso()})
            .eq("id", document_id)
        )

    # --- Analyses ---

    async def upsert_analysis(self, analysis: DocumentAnalysis) -> None:
        """Replace-on-conflict: one analysis row per document."""
        await self._execute(
            self.client()
            .table(ANALYSES)
            .upsert(analysis.to_row(), on_conflict="search_result_id")
        )
        log_service.log_db_operation("upsert", ANALYSES, "success", details=analysis.search_result_id)

    async def list_consumer_analyses(self, keyword: str, *, limit: int) -> list[DocumentAnalysis]:
        result = await self._execute(
            self.client()
            .table(ANALYSES)
            .select("*, search_results!inner(keyword, title, url, article_published_at, created_at)")
            .eq("search_results.keyword", keyword)
            .eq("is_consumer_review", True)
            .order("created_at", desc=True)
            .limit(limit)
        )
        return [DocumentAnalysis.from_row(row) for row in result.data or []]

    # --- First-stage cache ---

    async def get_cache_entry(self, user_id: str, cache_key: str) -> CacheEntry | None:
        result = await self._execute(
            self.client()
            .table(CACHE)
            .select("*")
            .eq("user_id", user_id)
            .eq("cache_key", cache_key)
            .order("created_at", desc=True)
            .limit(1)
        )
        return CacheEntry.from_row(result.data[0]) if result.data else None

    async def save_cache_entry(self, entry: CacheEntry) -> None:
        await self._execute(self.client().table(CACHE).insert(entry.to_row()))
        log_service.log_db_operation("insert", CACHE, "success", details=entry.cache_key)

    # --- Advanced insights ---

    async def insert_advanced_insight(self, row: dict[str, Any]) -> dict[str, Any]:
        result = await self._execute(self.client().table(INSIGHTS).insert(row))
        return result.data[0]

    async def latest_advanced_insight(self, keyword: str, user_id: str) -> dict[str, Any] | None:
        result = await self._execute(
            self.client()
            .table(INSIGHTS)
            .select("*")
            .eq("keyword", keyword)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(1)
        )
        return result.data[0] if result.data else None

    # --- Keyword registry ---

    async def get_keyword(self, keyword_id: str) -> Keyword | None:
        result = await self._execute(
            self.client().table(KEYWORDS).select("*").eq("id", keyword_id)
        )
        return Keyword.from_row(result.data[0]) if result.data else None

    async def record_search(
        self,
        keyword: str,
        *,
        user_id: str | None,
        display_name: str | None = None,
        source: str = "manual",
        project_id: str | None = None,
        category: str | None = None,
    ) -> Keyword:
        """Upsert keyed on the literal keyword text: bump the count or create the row."""
        now = _utc_now_iso()
        query = self.client().table(KEYWORDS).select("*").eq("keyword", keyword)
        if user_id:
            query = query.eq("user_id", user_id)
        existing = await self._execute(query.limit(1))

        if existing.data:
            row = existing.data[0]
            update = {
                "search_count": int(row.get("search_count") or 0) + 1,
                "last_searched_at": now,
                "updated_at": now,
            }
            result = await self._execute(
                self.client().table(KEYWORDS).update(update).eq("id", row["id"])
            )
            return Keyword.from_row(result.data[0] if result.data else {**row, **update})

        insert = {
            "keyword": keyword,
            "user_id": user_id,
            "display_name": display_name or keyword,
            "source": source,
            "project_id": project_id,
            "category": category,
            "search_count": 1,
            "last_searched_at": now,
            "is_active": True,
        }
        result = await self._execute(self.client().table(KEYWORDS).insert(insert))
        return Keyword.from_row(result.data[0])
