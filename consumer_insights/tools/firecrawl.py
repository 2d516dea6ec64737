from __future__ import annotations

from dataclasses import dataclass

import httpx

from consumer_insights.config import Settings
from consumer_insights.errors import ConfigurationError, raise_for_provider_status, wrap_transport_error
from consumer_insights.services import logger as log_service
from consumer_insights.tools.content_extractor import html_to_text, normalize_text

PROVIDER = "firecrawl"


@dataclass
class CrawledPage:
    url: str
    content: str
    method: str  # markdown | html | empty

    @property
    def is_empty(self) -> bool:
        return not self.content


class FirecrawlClient:
    def __init__(self, settings: Settings, http: httpx.AsyncClient):
        self._settings = settings
        self._http = http

    def ensure_configured(self) -> None:
        if not self._settings.firecrawl_api_key:
            raise ConfigurationError("FIRECRAWL_API_KEY is not configured")

    async def extract(self, url: str) -> CrawledPage:
        """Fetch the main content of a page, preferring markdown over HTML."""
        self.ensure_configured()

        endpoint = self._settings.firecrawl_base_url.rstrip("/") + "/v1/scrape"
        try:
            response = await self._http.post(
                endpoint,
                json={"url": url, "formats": ["markdown", "html"], "onlyMainContent": True},
                headers={"Authorization": f"Bearer {self._settings.firecrawl_api_key}"},
                timeout=self._settings.http_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise wrap_transport_error(exc, PROVIDER) from exc

        raise_for_provider_status(response, PROVIDER)
        data = response.json().get("data") or {}

        markdown = normalize_text(data.get("markdown") or "")
        if markdown:
            page = CrawledPage(url=url, content=markdown, method="markdown")
        else:
            page = CrawledPage(url=url, content=html_to_text(data.get("html") or ""), method="html")
            if page.is_empty:
                page.method = "empty"

        log_service.log_event(
            event_type="crawl_completed",
            message=f"{PROVIDER} extracted {len(page.content)} chars",
            url=url,
            method=page.method,
        )
        return page
