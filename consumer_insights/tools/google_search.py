from __future__ import annotations

from typing import Any

import httpx

from consumer_insights.config import Settings
from consumer_insights.errors import ConfigurationError, raise_for_provider_status, wrap_transport_error
from consumer_insights.models.records import SearchCandidate, SearchPeriod
from consumer_insights.services import logger as log_service

PROVIDER = "google_search"

DATE_RESTRICT_MAP = {
    SearchPeriod.D7: "d7",
    SearchPeriod.M1: "m1",
    SearchPeriod.M3: "m3",
    SearchPeriod.M6: "m6",
    SearchPeriod.Y1: "y1",
}


def _map_items(payload: dict[str, Any]) -> list[SearchCandidate]:
    mapped: list[SearchCandidate] = []
    for item in payload.get("items", []) or []:
        link = item.get("link") or ""
        if not link:
            continue
        mapped.append(
            SearchCandidate(
                link=link,
                title=item.get("title", "") or "",
                snippet=item.get("snippet", "") or "",
                display_link=item.get("displayLink", "") or "",
            )
        )
    return mapped


class GoogleSearchClient:
    """Google Programmable Search, pinned to Korean-language results."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient):
        self._settings = settings
        self._http = http

    async def search(
        self,
        query: str,
        *,
        period: SearchPeriod | None = None,
        max_results: int | None = None,
    ) -> list[SearchCandidate]:
        if not self._settings.google_search_api_key or not self._settings.google_search_engine_id:
            raise ConfigurationError("GOOGLE_SEARCH_API_KEY / GOOGLE_SEARCH_ENGINE_ID are not configured")

        # The API caps a single page at 10 items.
        num = min(max_results or self._settings.search_max_results, 10)
        params: dict[str, Any] = {
            "key": self._settings.google_search_api_key,
            "cx": self._settings.google_search_engine_id,
            "q": query,
            "num": num,
            "gl": self._settings.search_locale_gl,
            "hl": self._settings.search_locale_hl,
        }
        if period is not None and period in DATE_RESTRICT_MAP:
            params["dateRestrict"] = DATE_RESTRICT_MAP[period]

        try:
            response = await self._http.get(
                self._settings.google_search_base_url,
                params=params,
                timeout=self._settings.http_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise wrap_transport_error(exc, PROVIDER) from exc

        raise_for_provider_status(response, PROVIDER)
        candidates = _map_items(response.json())
        log_service.log_event(
            event_type="search_completed",
            message=f"{PROVIDER} returned {len(candidates)} items",
            query=query,
            period=period.value if period else None,
        )
        return candidates
