"""Explicit wiring of clients and pipeline components for one application lifetime."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import httpx

from consumer_insights.agents.aggregate_analyzer import AggregateAnalyzer
from consumer_insights.agents.deep_analyzer import DeepAnalyzer
from consumer_insights.agents.keyword_generator import KeywordGenerator
from consumer_insights.agents.premium_analyzer import PremiumAnalyzer
from consumer_insights.agents.relevance_filter import RelevanceFilter
from consumer_insights.agents.review_insights import ReviewInsightsAnalyzer
from consumer_insights.config import Settings
from consumer_insights.llm_client import OpenRouterClientAdapter, get_client
from consumer_insights.services.batch_coordinator import BatchCoordinator
from consumer_insights.services.candidate_retriever import CandidateRetriever
from consumer_insights.services.date_backfill import DateBackfillRecoverer
from consumer_insights.services.ingestion import IngestionWriter
from consumer_insights.services.rate_limiter import IntervalRateLimiter
from consumer_insights.services.search_pipeline import SearchPipeline
from consumer_insights.services.status_events import StatusBroadcaster
from consumer_insights.services.supabase import SupabaseStore
from consumer_insights.tools.firecrawl import FirecrawlClient
from consumer_insights.tools.google_search import GoogleSearchClient


@dataclass
class ServiceContainer:
    settings: Settings
    http: httpx.AsyncClient
    llm: OpenRouterClientAdapter
    store: SupabaseStore
    broadcaster: StatusBroadcaster
    limiter_factory: Callable[[], IntervalRateLimiter]
    retriever: CandidateRetriever
    relevance_filter: RelevanceFilter
    ingestion: IngestionWriter
    deep_analyzer: DeepAnalyzer
    batch: BatchCoordinator
    aggregate_analyzer: AggregateAnalyzer
    premium_analyzer: PremiumAnalyzer
    review_insights: ReviewInsightsAnalyzer
    date_backfill: DateBackfillRecoverer
    keyword_generator: KeywordGenerator
    search: SearchPipeline

    async def aclose(self) -> None:
        self.broadcaster.close()
        await self.http.aclose()
        await self.llm.aclose()


def build_container(
    settings: Settings,
    *,
    store: SupabaseStore | None = None,
    llm: OpenRouterClientAdapter | None = None,
    http: httpx.AsyncClient | None = None,
    limiter_factory: Callable[[], IntervalRateLimiter] | None = None,
) -> ServiceContainer:
    http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    llm = llm or get_client(settings)
    store = store or SupabaseStore(settings)
    broadcaster = StatusBroadcaster()
    if limiter_factory is None:
        def limiter_factory() -> IntervalRateLimiter:
            return IntervalRateLimiter(settings.batch_delay_seconds)

    deep_analyzer = DeepAnalyzer(
        llm,
        settings.model_for("analysis"),
        store=store,
        crawler=FirecrawlClient(settings, http),
        broadcaster=broadcaster,
        settings=settings,
    )
    batch = BatchCoordinator(
        store=store,
        analyzer=deep_analyzer,
        limiter_factory=limiter_factory,
        page_size=settings.batch_page_size,
    )
    retriever = CandidateRetriever(GoogleSearchClient(settings, http), max_results=settings.search_max_results)
    relevance_filter = RelevanceFilter(llm, settings.model_for("filter"))
    ingestion = IngestionWriter(store)
    keyword_generator = KeywordGenerator(llm, settings.model_for("summary"))

    return ServiceContainer(
        settings=settings,
        http=http,
        llm=llm,
        store=store,
        broadcaster=broadcaster,
        limiter_factory=limiter_factory,
        retriever=retriever,
        relevance_filter=relevance_filter,
        ingestion=ingestion,
        deep_analyzer=deep_analyzer,
        batch=batch,
        aggregate_analyzer=AggregateAnalyzer(llm, settings.model_for("summary"), store=store),
        premium_analyzer=PremiumAnalyzer(llm, settings.model_for("summary"), store=store, settings=settings),
        review_insights=ReviewInsightsAnalyzer(llm, settings.model_for("summary"), settings=settings),
        date_backfill=DateBackfillRecoverer(
            store=store,
            batch=batch,
            reanalysis_limit=settings.reanalysis_batch_size,
            error_sample=settings.backfill_error_sample,
        ),
        keyword_generator=keyword_generator,
        search=SearchPipeline(
            store=store,
            retriever=retriever,
            relevance_filter=relevance_filter,
            writer=ingestion,
            keyword_generator=keyword_generator,
        ),
    )
