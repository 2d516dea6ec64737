from __future__ import annotations

from datetime import datetime, timezone

import pytest

from consumer_insights.agents.aggregate_analyzer import AggregateAnalyzer, build_corpus
from consumer_insights.errors import MalformedResponseError, NoDataAvailableError
from consumer_insights.services.cache_keys import generate_cache_key
from tests.fakes import InMemoryStore, ScriptedLLM, first_stage_payload


def _docs(store, count=3):
    return [
        store.add_document(
            title=f"후기 {i}",
            snippet=f"내용 {i}",
            article_published_at=datetime(2025, 1, 1 + i, tzinfo=timezone.utc),
        )
        for i in range(count)
    ]


@pytest.mark.asyncio
async def test_cache_miss_runs_model_and_stores_report():
    store = InMemoryStore()
    docs = _docs(store)
    llm = ScriptedLLM([first_stage_payload()])

    report = await AggregateAnalyzer(llm, "summary-model", store=store).run(
        user_id="user-1", documents=docs, keyword="토너", search_period="m1"
    )

    assert report.cached is False
    assert report.result_count == 3
    assert report.cache_key == generate_cache_key([d.id for d in docs])
    assert report.analysis_data["quantitativeMetrics"]["trendDirection"] == "상승"
    assert [p["date"] for p in report.trend_data] == ["2025-01-01", "2025-01-02", "2025-01-03"]
    assert len(store.cache) == 1
    assert store.cache[0]["keyword"] == "토너"
    assert store.cache[0]["search_period"] == "m1"

    prompt = llm.messages.calls[0]["messages"][0]["content"]
    assert "[1] 제목: 후기 0\n내용: 내용 0" in prompt


@pytest.mark.asyncio
async def test_cache_hit_skips_model_regardless_of_order():
    store = InMemoryStore()
    docs = _docs(store)
    llm = ScriptedLLM([first_stage_payload()])
    analyzer = AggregateAnalyzer(llm, "m", store=store)

    first = await analyzer.run(user_id="user-1", documents=docs)
    second = await analyzer.run(user_id="user-1", documents=list(reversed(docs)))

    assert second.cached is True
    assert second.cache_key == first.cache_key
    assert second.analysis_data == first.analysis_data
    assert len(llm.messages.calls) == 1


@pytest.mark.asyncio
async def test_cache_is_scoped_per_user():
    store = InMemoryStore()
    docs = _docs(store)
    llm = ScriptedLLM([first_stage_payload(), first_stage_payload(summary="다른 사용자")])
    analyzer = AggregateAnalyzer(llm, "m", store=store)

    await analyzer.run(user_id="user-1", documents=docs)
    other = await analyzer.run(user_id="user-2", documents=docs)

    assert other.cached is False
    assert other.analysis_data["summary"] == "다른 사용자"


@pytest.mark.asyncio
async def test_incomplete_report_is_rejected_and_not_cached():
    store = InMemoryStore()
    docs = _docs(store)
    payload = first_stage_payload()
    del payload["categoryAnalysis"]["quality"]
    analyzer = AggregateAnalyzer(ScriptedLLM([payload]), "m", store=store)

    with pytest.raises(MalformedResponseError):
        await analyzer.run(user_id="user-1", documents=docs)
    assert store.cache == []


@pytest.mark.asyncio
async def test_cache_write_failure_still_returns_report(monkeypatch):
    store = InMemoryStore()
    docs = _docs(store)

    async def broken_save(entry):
        raise RuntimeError("db down")

    monkeypatch.setattr(store, "save_cache_entry", broken_save)
    report = await AggregateAnalyzer(ScriptedLLM([first_stage_payload()]), "m", store=store).run(
        user_id="user-1", documents=docs
    )
    assert report.cached is False
    assert report.result_count == 3


@pytest.mark.asyncio
async def test_empty_document_set():
    store = InMemoryStore()
    llm = ScriptedLLM([])
    with pytest.raises(NoDataAvailableError):
        await AggregateAnalyzer(llm, "m", store=store).run(user_id="user-1", documents=[])
    assert llm.messages.calls == []


def test_build_corpus_numbers_from_one():
    store = InMemoryStore()
    docs = _docs(store, 2)
    assert build_corpus(docs) == "[1] 제목: 후기 0\n내용: 내용 0\n\n[2] 제목: 후기 1\n내용: 내용 1"
