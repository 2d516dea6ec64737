from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from consumer_insights.agents.deep_analyzer import DeepAnalyzer, parse_published_date
from consumer_insights.config import Settings
from consumer_insights.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    EmptyContentError,
    MalformedResponseError,
    UpstreamError,
)
from consumer_insights.llm_client import OpenRouterClientAdapter
from consumer_insights.services.status_events import StatusBroadcaster
from tests.fakes import FakeCrawler, InMemoryStore, ScriptedLLM

ANALYSIS = {
    "isConsumerReview": True,
    "sentiment": "positive",
    "category": "스킨케어",
    "keyTopics": ["보습", "향"],
    "summary": "보습력이 좋다는 후기",
    "publishedDate": "2024-03-15",
    "structuredData": {
        "productMentioned": "브링그린 토너",
        "brandMentioned": "브링그린",
        "priceDiscussed": True,
        "recommendationLevel": 4,
        "mainIssues": ["용량"],
        "mainPraises": ["보습"],
    },
}


def _analyzer(store, llm, crawler, broadcaster=None, **settings_overrides):
    return DeepAnalyzer(
        llm,
        "analysis-model",
        store=store,
        crawler=crawler,
        broadcaster=broadcaster or StatusBroadcaster(),
        settings=Settings(_env_file=None, **settings_overrides),
        today=lambda: date(2025, 1, 20),
    )


@pytest.mark.asyncio
async def test_successful_analysis_persists_and_marks_analyzed():
    store = InMemoryStore()
    doc = store.add_document(title="토너 후기", url="https://cafe.example.com/a")
    broadcaster = StatusBroadcaster()
    subscription = broadcaster.subscribe(doc.keyword)
    crawler = FakeCrawler(default="본문 " * 5000)
    llm = ScriptedLLM([ANALYSIS])

    outcome = await _analyzer(store, llm, crawler, broadcaster).analyze(doc.id)

    assert outcome.status.value == "analyzed"
    assert store.status_history == [(doc.id, "crawling"), (doc.id, "analyzed")]
    row = store.analyses[doc.id]
    assert row["sentiment"] == "positive"
    assert row["key_topics"] == ["보습", "향"]
    assert row["structured_data"]["recommendationLevel"] == 4
    assert len(row["full_content"]) == 10000
    assert store.documents[doc.id]["article_published_at"] == datetime(2024, 3, 15, tzinfo=timezone.utc)

    prompt = llm.messages.calls[0]["messages"][0]["content"]
    assert "오늘 날짜: 2025-01-20" in prompt
    assert "본문 " * 100 in prompt
    assert "본문 " * 1334 not in prompt

    events = [await subscription.next(), await subscription.next()]
    assert [e.status.value for e in events] == ["crawling", "analyzed"]
    assert events[1].previous_status.value == "crawling"


@pytest.mark.asyncio
async def test_empty_content_marks_failed():
    store = InMemoryStore()
    doc = store.add_document()
    llm = ScriptedLLM([])

    with pytest.raises(EmptyContentError):
        await _analyzer(store, llm, FakeCrawler(default="")).analyze(doc.id)

    assert store.documents[doc.id]["status"] == "failed"
    assert llm.messages.calls == []
    assert doc.id not in store.analyses


@pytest.mark.asyncio
async def test_malformed_analysis_marks_failed():
    store = InMemoryStore()
    doc = store.add_document()
    llm = ScriptedLLM(["분석 결과를 드릴 수 없습니다"])

    with pytest.raises(MalformedResponseError):
        await _analyzer(store, llm, FakeCrawler(default="본문")).analyze(doc.id)

    assert store.status_history[-1] == (doc.id, "failed")
    assert doc.id not in store.analyses


@pytest.mark.asyncio
async def test_schema_violation_marks_failed():
    store = InMemoryStore()
    doc = store.add_document()
    llm = ScriptedLLM([{**ANALYSIS, "sentiment": "very good"}])

    with pytest.raises(MalformedResponseError):
        await _analyzer(store, llm, FakeCrawler(default="본문")).analyze(doc.id)

    assert store.documents[doc.id]["status"] == "failed"


@pytest.mark.asyncio
async def test_crawler_error_marks_failed():
    store = InMemoryStore()
    doc = store.add_document()
    crawler = FakeCrawler(error=UpstreamError("firecrawl request timed out"))

    with pytest.raises(UpstreamError):
        await _analyzer(store, ScriptedLLM([]), crawler).analyze(doc.id)

    assert store.documents[doc.id]["status"] == "failed"


@pytest.mark.asyncio
async def test_missing_gateway_key_raises_before_crawling():
    store = InMemoryStore()
    doc = store.add_document()
    crawler = FakeCrawler(default="본문")

    with pytest.raises(ConfigurationError):
        await _analyzer(store, OpenRouterClientAdapter(None), crawler).analyze(doc.id)

    assert crawler.calls == []
    assert store.status_history == []
    assert store.documents[doc.id]["status"] == "pending"


@pytest.mark.asyncio
async def test_missing_document_leaves_no_trace():
    store = InMemoryStore()
    with pytest.raises(DocumentNotFoundError):
        await _analyzer(store, ScriptedLLM([]), FakeCrawler(default="x")).analyze("nope")
    assert store.status_history == []


@pytest.mark.asyncio
async def test_reanalysis_replaces_previous_analysis():
    store = InMemoryStore()
    doc = store.add_document(status="analyzed")
    llm = ScriptedLLM([ANALYSIS, {**ANALYSIS, "sentiment": "negative", "publishedDate": None}])
    analyzer = _analyzer(store, llm, FakeCrawler(default="본문"))

    await analyzer.analyze(doc.id)
    await analyzer.analyze(doc.id)

    assert len(store.analyses) == 1
    assert store.analyses[doc.id]["sentiment"] == "negative"
    # the earlier publish date is kept when the new run finds none
    assert store.documents[doc.id]["article_published_at"] == datetime(2024, 3, 15, tzinfo=timezone.utc)


class TestParsePublishedDate:
    def test_valid(self):
        assert parse_published_date("2024-03-15") == datetime(2024, 3, 15, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "2024-02-30", "2024/03/15", "3일 전", "2024-3-5", 20240315])
    def test_rejected(self, value):
        assert parse_published_date(value) is None
