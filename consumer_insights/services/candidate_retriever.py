from __future__ import annotations

from consumer_insights.errors import EmptyQueryError
from consumer_insights.models.records import SearchCandidate, SearchPeriod
from consumer_insights.services import logger as log_service
from consumer_insights.tools.google_search import GoogleSearchClient


class CandidateRetriever:
    """One page of search-index candidates for a compiled query.

    Provider failures propagate unchanged; an empty page is a valid result.
    """

    def __init__(self, search_client: GoogleSearchClient, *, max_results: int = 10):
        self.search_client = search_client
        self.max_results = max_results

    async def retrieve(self, query: str, *, period: SearchPeriod | None = None) -> list[SearchCandidate]:
        query = (query or "").strip()
        if not query:
            raise EmptyQueryError()

        candidates = await self.search_client.search(query, period=period, max_results=self.max_results)
        candidates = candidates[: self.max_results]
        log_service.log_pipeline_step(
            "retrieve",
            "completed",
            query=query,
            period=period.value if period else None,
            found=len(candidates),
        )
        return candidates
