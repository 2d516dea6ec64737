from __future__ import annotations

from consumer_insights.agents.base import BaseAgent, validate_payload
from consumer_insights.config import Settings
from consumer_insights.errors import NoDataAvailableError
from consumer_insights.llm_client import OpenRouterClientAdapter
from consumer_insights.models.analysis import ReviewInsights
from consumer_insights.services import logger as log_service
from consumer_insights.services.prompt_store import render_prompt


class ReviewInsightsAnalyzer(BaseAgent):
    """Sentiment counts, topics, personas and a keyword graph over caller-supplied reviews."""

    name = "review_insights"
    max_tokens = 4096

    def __init__(self, client: OpenRouterClientAdapter, model: str, *, settings: Settings):
        super().__init__(client, model)
        self.settings = settings

    def prepare(self, reviews: list[str]) -> list[str]:
        texts = [r.strip() for r in reviews if r and r.strip()]
        return texts[: self.settings.review_insights_max_reviews]

    async def analyze(self, reviews: list[str]) -> ReviewInsights:
        texts = self.prepare(reviews)
        if not texts:
            raise NoDataAvailableError("리뷰 데이터가 없습니다.")

        sample = texts[: self.settings.review_insights_prompt_reviews]
        data = await self._complete_json(
            render_prompt("review_insights.system"),
            render_prompt("review_insights.user", reviews="\n\n".join(sample)),
        )
        insights = validate_payload(ReviewInsights, data, caller=self.name)
        log_service.log_pipeline_step(
            "review_insights",
            "completed",
            received=len(reviews),
            analyzed=len(sample),
            topics=len(insights.topics),
        )
        return insights
