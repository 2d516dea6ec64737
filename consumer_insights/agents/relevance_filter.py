from __future__ import annotations

from consumer_insights.agents.base import BaseAgent, validate_payload
from consumer_insights.errors import ConfigurationError, QuotaExceededError, RateLimitError
from consumer_insights.models.analysis import FilterDecision
from consumer_insights.models.records import AcceptedCandidate, SearchCandidate
from consumer_insights.services import logger as log_service
from consumer_insights.services.prompt_store import render_prompt

# Failures that would repeat for every remaining candidate.
_ABORTING_ERRORS = (ConfigurationError, RateLimitError, QuotaExceededError)


class RelevanceFilter(BaseAgent):
    """Keeps only candidates that read like genuine consumer opinions."""

    name = "relevance_filter"
    max_tokens = 300

    async def classify(self, candidate: SearchCandidate) -> FilterDecision:
        data = await self._complete_json(
            render_prompt("relevance_filter.system"),
            render_prompt(
                "relevance_filter.user",
                title=candidate.title,
                snippet=candidate.snippet,
                domain=candidate.display_link,
            ),
        )
        return validate_payload(FilterDecision, data, caller=self.name)

    async def filter(self, candidates: list[SearchCandidate]) -> list[AcceptedCandidate]:
        """Classify candidates one at a time, preserving input order.

        A candidate whose classification fails is logged and dropped;
        configuration and rate/quota errors stop the run.
        """
        accepted: list[AcceptedCandidate] = []
        for candidate in candidates:
            try:
                decision = await self.classify(candidate)
            except _ABORTING_ERRORS:
                raise
            except Exception as e:
                log_service.log_event(
                    event_type="filter_item_failed",
                    message=str(e),
                    url=candidate.link,
                    title=candidate.title,
                )
                continue

            log_service.logger.info(
                "filter %s: %s - %s",
                "VALID" if decision.is_valid else "INVALID",
                candidate.title,
                decision.reason,
            )
            if decision.is_valid:
                accepted.append(AcceptedCandidate(candidate=candidate, reason=decision.reason))

        log_service.log_pipeline_step(
            "relevance_filter",
            "completed",
            total=len(candidates),
            accepted=len(accepted),
        )
        return accepted
