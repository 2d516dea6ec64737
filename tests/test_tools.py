from __future__ import annotations

import httpx
import pytest

from consumer_insights.config import Settings
from consumer_insights.errors import ConfigurationError, QuotaExceededError, RateLimitError, UpstreamError
from consumer_insights.models.records import SearchPeriod
from consumer_insights.tools import content_extractor
from consumer_insights.tools.firecrawl import FirecrawlClient
from consumer_insights.tools.google_search import GoogleSearchClient

REQUEST = httpx.Request("GET", "https://provider.test")


class FakeHttp:
    """Records calls and replays a canned response (or raises)."""

    def __init__(self, response: httpx.Response | None = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str, dict]] = []

    async def _reply(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    async def get(self, url, **kwargs):
        return await self._reply("GET", url, kwargs)

    async def post(self, url, **kwargs):
        return await self._reply("POST", url, kwargs)


def _response(status_code: int, payload=None, text: str | None = None) -> httpx.Response:
    if payload is not None:
        return httpx.Response(status_code, json=payload, request=REQUEST)
    return httpx.Response(status_code, text=text or "", request=REQUEST)


def _settings(**overrides) -> Settings:
    values = {
        "google_search_api_key": "g-key",
        "google_search_engine_id": "cx-1",
        "firecrawl_api_key": "fc-key",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestGoogleSearch:
    @pytest.mark.asyncio
    async def test_request_params_and_mapping(self):
        http = FakeHttp(_response(200, {
            "items": [
                {"link": "https://cafe.example.com/1", "title": "후기", "snippet": "좋아요", "displayLink": "cafe.example.com"},
                {"title": "링크 없음"},
            ]
        }))

        results = await GoogleSearchClient(_settings(), http).search("토너 후기", period=SearchPeriod.M3, max_results=25)

        method, url, kwargs = http.calls[0]
        assert url == "https://www.googleapis.com/customsearch/v1"
        assert kwargs["params"] == {
            "key": "g-key",
            "cx": "cx-1",
            "q": "토너 후기",
            "num": 10,
            "gl": "kr",
            "hl": "ko",
            "dateRestrict": "m3",
        }
        assert [r.link for r in results] == ["https://cafe.example.com/1"]
        assert results[0].display_link == "cafe.example.com"

    @pytest.mark.asyncio
    async def test_no_period_means_no_date_restriction(self):
        http = FakeHttp(_response(200, {}))
        assert await GoogleSearchClient(_settings(), http).search("q") == []
        assert "dateRestrict" not in http.calls[0][2]["params"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,error", [(429, RateLimitError), (402, QuotaExceededError), (500, UpstreamError)])
    async def test_provider_status_mapping(self, status, error):
        http = FakeHttp(_response(status, text="nope"))
        with pytest.raises(error):
            await GoogleSearchClient(_settings(), http).search("q")

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        http = FakeHttp(_response(200, {}))
        with pytest.raises(ConfigurationError):
            await GoogleSearchClient(_settings(google_search_engine_id=""), http).search("q")
        assert http.calls == []

    @pytest.mark.asyncio
    async def test_timeout_is_upstream_error(self):
        http = FakeHttp(error=httpx.ReadTimeout("slow", request=REQUEST))
        with pytest.raises(UpstreamError, match="timed out"):
            await GoogleSearchClient(_settings(), http).search("q")


class TestFirecrawl:
    @pytest.mark.asyncio
    async def test_prefers_markdown(self):
        http = FakeHttp(_response(200, {"data": {"markdown": "# 후기\n\n\n\n본문", "html": "<p>x</p>"}}))

        page = await FirecrawlClient(_settings(), http).extract("https://cafe.example.com/1")

        assert page.method == "markdown"
        assert page.content == "# 후기\n\n본문"
        method, url, kwargs = http.calls[0]
        assert url == "https://api.firecrawl.dev/v1/scrape"
        assert kwargs["json"]["formats"] == ["markdown", "html"]
        assert kwargs["json"]["onlyMainContent"] is True
        assert kwargs["headers"]["Authorization"] == "Bearer fc-key"

    @pytest.mark.asyncio
    async def test_falls_back_to_html(self, monkeypatch):
        monkeypatch.setattr(content_extractor, "_extract_with_trafilatura", lambda raw: "")
        html = "<html><body><nav>메뉴</nav><p>실제 본문</p><script>x()</script></body></html>"
        http = FakeHttp(_response(200, {"data": {"markdown": "", "html": html}}))

        page = await FirecrawlClient(_settings(), http).extract("https://cafe.example.com/1")

        assert page.method == "html"
        assert page.content == "실제 본문"

    @pytest.mark.asyncio
    async def test_nothing_extracted(self):
        http = FakeHttp(_response(200, {"data": {}}))
        page = await FirecrawlClient(_settings(), http).extract("https://cafe.example.com/1")
        assert page.is_empty
        assert page.method == "empty"

    @pytest.mark.asyncio
    async def test_quota_exhausted(self):
        http = FakeHttp(_response(402, {"error": "Payment required"}))
        with pytest.raises(QuotaExceededError):
            await FirecrawlClient(_settings(), http).extract("https://cafe.example.com/1")

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigurationError):
            await FirecrawlClient(_settings(firecrawl_api_key=""), FakeHttp()).extract("https://x")


def test_normalize_text_collapses_whitespace():
    assert content_extractor.normalize_text("a\xa0 \t b\r\n\n\n\nc  ") == "a b\n\nc"


def test_html_to_text_blank():
    assert content_extractor.html_to_text("   ") == ""
