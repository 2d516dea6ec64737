from __future__ import annotations

from dataclasses import dataclass

from consumer_insights.agents.base import BaseAgent, validate_payload
from consumer_insights.errors import NoDataAvailableError
from consumer_insights.llm_client import OpenRouterClientAdapter
from consumer_insights.models.analysis import FirstStageAnalysis
from consumer_insights.models.records import CacheEntry, Document
from consumer_insights.services import logger as log_service
from consumer_insights.services.cache_keys import generate_cache_key
from consumer_insights.services.prompt_store import render_prompt
from consumer_insights.services.supabase import SupabaseStore
from consumer_insights.services.trends import build_trend_data


@dataclass
class FirstStageReport:
    cache_key: str
    cached: bool
    result_count: int
    analysis_data: dict
    trend_data: list[dict]


def build_corpus(documents: list[Document]) -> str:
    """Numbered title/snippet pairs; page content is never used at this stage."""
    return "\n\n".join(
        f"[{idx}] 제목: {doc.title}\n내용: {doc.snippet}"
        for idx, doc in enumerate(documents, start=1)
    )


class AggregateAnalyzer(BaseAgent):
    """First-stage report over titles and snippets, cached per document set."""

    name = "aggregate_analyzer"
    max_tokens = 4096

    def __init__(self, client: OpenRouterClientAdapter, model: str, *, store: SupabaseStore):
        super().__init__(client, model)
        self.store = store

    async def summarize(self, documents: list[Document]) -> FirstStageAnalysis:
        data = await self._complete_json(
            render_prompt("first_stage.system"),
            render_prompt("first_stage.user", corpus=build_corpus(documents)),
        )
        return validate_payload(FirstStageAnalysis, data, caller=self.name)

    async def _cached(self, user_id: str, cache_key: str) -> CacheEntry | None:
        try:
            return await self.store.get_cache_entry(user_id, cache_key)
        except Exception as e:
            log_service.log_db_operation("select", "analysis_cache", "error", details=cache_key, error=str(e))
            return None

    async def run(
        self,
        *,
        user_id: str,
        documents: list[Document],
        keyword: str | None = None,
        search_period: str | None = None,
        fill_gaps: bool = False,
    ) -> FirstStageReport:
        if not documents:
            raise NoDataAvailableError("분석할 검색 결과가 없습니다.")

        cache_key = generate_cache_key(doc.id for doc in documents)
        hit = await self._cached(user_id, cache_key)
        if hit is not None:
            log_service.log_pipeline_step("first_stage", "cache_hit", cache_key=cache_key)
            return FirstStageReport(
                cache_key=cache_key,
                cached=True,
                result_count=hit.result_count,
                analysis_data=hit.analysis_data,
                trend_data=hit.trend_data,
            )

        analysis = await self.summarize(documents)
        report = FirstStageReport(
            cache_key=cache_key,
            cached=False,
            result_count=len(documents),
            analysis_data=analysis.model_dump(by_alias=True),
            trend_data=build_trend_data(documents, fill_gaps=fill_gaps),
        )

        try:
            await self.store.save_cache_entry(
                CacheEntry(
                    cache_key=cache_key,
                    user_id=user_id,
                    analysis_data=report.analysis_data,
                    trend_data=report.trend_data,
                    result_count=report.result_count,
                    keyword=keyword,
                    search_period=search_period,
                )
            )
        except Exception as e:
            log_service.log_db_operation("insert", "analysis_cache", "error", details=cache_key, error=str(e))

        log_service.log_pipeline_step(
            "first_stage",
            "completed",
            cache_key=cache_key,
            result_count=report.result_count,
        )
        return report
