"""Search flow: compile, register, retrieve, filter, ingest."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from consumer_insights.agents.keyword_generator import KeywordGenerator
from consumer_insights.agents.relevance_filter import RelevanceFilter
from consumer_insights.errors import DocumentNotFoundError, EmptyQueryError, PipelineError
from consumer_insights.models.records import AcceptedCandidate, KeywordSource, SearchPeriod
from consumer_insights.services import logger as log_service
from consumer_insights.services.candidate_retriever import CandidateRetriever
from consumer_insights.services.ingestion import IngestionReport, IngestionWriter
from consumer_insights.services.query_compiler import CompiledQuery, compile_guided_query, compile_query
from consumer_insights.services.supabase import SupabaseStore


@dataclass
class SearchOutcome:
    query: CompiledQuery
    report: IngestionReport
    accepted: list[AcceptedCandidate] = field(default_factory=list)
    message: str = "Search and filtering completed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "keyword": self.query.query,
            "displayName": self.query.display_name,
            **self.report.to_counts(),
            "results": [item.to_dict() for item in self.accepted],
        }


@dataclass
class GuidedRun:
    display_name: str
    search_query: str
    outcome: SearchOutcome | None = None
    error: PipelineError | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "displayName": self.display_name,
            "searchQuery": self.search_query,
            "ok": self.error is None,
        }
        if self.outcome is not None:
            data["result"] = self.outcome.to_dict()
        if self.error is not None:
            data["error"] = self.error.to_payload()
        return data


class SearchPipeline:
    def __init__(
        self,
        *,
        store: SupabaseStore,
        retriever: CandidateRetriever,
        relevance_filter: RelevanceFilter,
        writer: IngestionWriter,
        keyword_generator: KeywordGenerator,
    ):
        self.store = store
        self.retriever = retriever
        self.relevance_filter = relevance_filter
        self.writer = writer
        self.keyword_generator = keyword_generator

    async def _register(
        self,
        query: CompiledQuery,
        *,
        user_id: str | None,
        project_id: str | None,
        source: KeywordSource,
    ) -> None:
        try:
            await self.store.record_search(
                query.query,
                user_id=user_id,
                display_name=query.display_name,
                source=source.value,
                project_id=project_id,
            )
        except Exception as e:
            log_service.log_db_operation("upsert", "keywords", "error", details=query.query, error=str(e))

    async def run(
        self,
        query: CompiledQuery,
        *,
        period: SearchPeriod | None = None,
        user_id: str | None = None,
        project_id: str | None = None,
        source: KeywordSource = KeywordSource.MANUAL,
    ) -> SearchOutcome:
        await self._register(query, user_id=user_id, project_id=project_id, source=source)

        candidates = await self.retriever.retrieve(query.query, period=period)
        if not candidates:
            return SearchOutcome(
                query=query,
                report=IngestionReport(total_found=0, valid_results=0, saved_to_database=0),
                message="No search results found",
            )

        try:
            accepted = await self.relevance_filter.filter(candidates)
        except PipelineError as e:
            e.partial = {"totalFound": len(candidates)}
            raise

        report = await self.writer.write(
            accepted,
            keyword=query.query,
            total_found=len(candidates),
            user_id=user_id,
            project_id=project_id,
            search_period=period.value if period else None,
        )
        return SearchOutcome(query=query, report=report, accepted=accepted)

    async def _base_term(self, keyword_id: str | None) -> str | None:
        if not keyword_id:
            return None
        keyword = await self.store.get_keyword(keyword_id)
        if keyword is None:
            raise DocumentNotFoundError(f"Keyword {keyword_id} not found")
        return keyword.keyword

    async def search(
        self,
        *,
        base_term: str | None = None,
        addendum: str | None = None,
        keyword_id: str | None = None,
        mode: str = "compose",
        period: SearchPeriod | None = None,
        user_id: str | None = None,
        project_id: str | None = None,
    ) -> SearchOutcome:
        """Entry point for the free-form search box.

        ``compose`` combines a saved or typed base term with the addendum;
        ``natural`` hands the addendum text to the query extractor instead.
        """
        if mode == "natural":
            extracted = await self.keyword_generator.extract_search_query(addendum or base_term or "")
            query = CompiledQuery(query=extracted["searchQuery"], display_name=extracted["originalQuery"])
            source = KeywordSource.AUTO
        else:
            base = base_term or await self._base_term(keyword_id)
            query = compile_query(base, addendum)
            source = KeywordSource.MANUAL
        if not query.query.strip():
            raise EmptyQueryError()
        return await self.run(query, period=period, user_id=user_id, project_id=project_id, source=source)

    async def run_guided(
        self,
        *,
        company: str,
        product: str,
        info_types: list[str],
        period: SearchPeriod | None = None,
        user_id: str | None = None,
        project_id: str | None = None,
    ) -> list[GuidedRun]:
        """Guided three-step search.

        Selected info types compile into one OR-query. With none selected the
        keyword generator proposes several queries, each run independently and
        sequentially; a failing query is reported and does not stop the rest.
        """
        labels = [label for label in info_types if label and label.strip()]
        if labels:
            query = compile_guided_query(company, product, labels)
            outcome = await self.run(
                query,
                period=period,
                user_id=user_id,
                project_id=project_id,
                source=KeywordSource.GUIDED_SEARCH,
            )
            return [GuidedRun(display_name=query.display_name, search_query=query.query, outcome=outcome)]

        generated = await self.keyword_generator.generate(company, product)
        runs: list[GuidedRun] = []
        for item in generated:
            run = GuidedRun(display_name=item.display_name, search_query=item.search_query)
            try:
                run.outcome = await self.run(
                    CompiledQuery(query=item.search_query, display_name=item.display_name),
                    period=period,
                    user_id=user_id,
                    project_id=project_id,
                    source=KeywordSource.AUTO_GENERATED,
                )
            except PipelineError as e:
                log_service.log_event(
                    event_type="guided_query_failed",
                    message=e.message,
                    search_query=item.search_query,
                    reason=e.reason,
                )
                run.error = e
            runs.append(run)
        return runs
