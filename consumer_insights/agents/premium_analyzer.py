from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable
from typing import Any

from consumer_insights.agents.base import BaseAgent, validate_payload
from consumer_insights.config import Settings
from consumer_insights.errors import NoDataAvailableError
from consumer_insights.llm_client import OpenRouterClientAdapter
from consumer_insights.models.analysis import AdvancedInsightPayload
from consumer_insights.models.records import DocumentAnalysis, Sentiment
from consumer_insights.services import logger as log_service
from consumer_insights.services.prompt_store import render_prompt
from consumer_insights.services.supabase import SupabaseStore

SENTIMENT_WEIGHTS = {
    Sentiment.POSITIVE: 1.0,
    Sentiment.NEUTRAL: 0.5,
    Sentiment.MIXED: 0.3,
    Sentiment.NEGATIVE: 0.0,
}


def overall_sentiment_score(sentiments: Iterable[Sentiment | None]) -> float:
    """Weighted mean of sentiment labels; unlabeled analyses count as zero."""
    labels = list(sentiments)
    if not labels:
        return 0.0
    counts = Counter(labels)
    weighted = sum(SENTIMENT_WEIGHTS[label] * n for label, n in counts.items() if label is not None)
    return weighted / len(labels)


def summarize_analyses(analyses: list[DocumentAnalysis]) -> list[dict[str, Any]]:
    return [
        {
            "sentiment": a.sentiment.value if a.sentiment else None,
            "category": a.category,
            "topics": a.key_topics,
            "summary": a.summary,
            "structuredData": a.structured_data,
            "publishedDate": a.document.get("article_published_at"),
        }
        for a in analyses
    ]


class PremiumAnalyzer(BaseAgent):
    """Advanced insights over stored deep analyses; never crawls."""

    name = "premium_analyzer"
    max_tokens = 8192

    def __init__(
        self,
        client: OpenRouterClientAdapter,
        model: str,
        *,
        store: SupabaseStore,
        settings: Settings,
    ):
        super().__init__(client, model)
        self.store = store
        self.settings = settings

    async def synthesize(self, keyword: str, analyses: list[DocumentAnalysis]) -> AdvancedInsightPayload:
        corpus = json.dumps(summarize_analyses(analyses), ensure_ascii=False, indent=2, default=str)
        data = await self._complete_json(
            render_prompt("advanced_insights.system"),
            render_prompt(
                "advanced_insights.user",
                keyword=keyword,
                total=len(analyses),
                corpus=corpus[: self.settings.premium_corpus_chars],
            ),
            json_mode=False,
        )
        return validate_payload(AdvancedInsightPayload, data, caller=self.name)

    async def generate(
        self,
        *,
        keyword: str,
        user_id: str,
        project_id: str | None = None,
        search_period: str | None = None,
    ) -> dict[str, Any]:
        analyses = await self.store.list_consumer_analyses(
            keyword, limit=self.settings.premium_max_analyses
        )
        if not analyses:
            raise NoDataAvailableError(
                "No analysis results found for this keyword",
                details={"keyword": keyword},
            )

        score = overall_sentiment_score(a.sentiment for a in analyses)
        insights = await self.synthesize(keyword, analyses)

        row = {
            "user_id": user_id,
            "keyword": keyword,
            "project_id": project_id,
            "search_period": search_period,
            "executive_summary": insights.executive_summary,
            "consumer_personas": [p.model_dump(by_alias=True) for p in insights.consumer_personas],
            "competitive_landscape": insights.competitive_landscape.model_dump(by_alias=True),
            "action_items": [a.model_dump(by_alias=True) for a in insights.action_items],
            "trend_predictions": insights.trend_predictions.model_dump(by_alias=True),
            "opportunities": insights.opportunities,
            "threats": insights.threats,
            "sentiment_trends": insights.sentiment_trends.model_dump(by_alias=True),
            "total_reviews_analyzed": len(analyses),
            "overall_sentiment_score": score,
        }
        saved = await self.store.insert_advanced_insight(row)
        log_service.log_pipeline_step(
            "advanced_insights",
            "completed",
            keyword=keyword,
            total_reviews=len(analyses),
            score=score,
        )
        return saved
