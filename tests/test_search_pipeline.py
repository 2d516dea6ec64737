from __future__ import annotations

import pytest

from consumer_insights.agents.keyword_generator import KeywordGenerator
from consumer_insights.agents.relevance_filter import RelevanceFilter
from consumer_insights.errors import DocumentNotFoundError, EmptyQueryError, QuotaExceededError, RateLimitError
from consumer_insights.models.records import KeywordSource, SearchPeriod
from consumer_insights.services.candidate_retriever import CandidateRetriever
from consumer_insights.services.ingestion import IngestionWriter
from consumer_insights.services.search_pipeline import SearchPipeline
from tests.fakes import FakeSearchClient, InMemoryStore, ScriptedLLM, make_candidates, tool_response


def verdicts(valid_indexes, total):
    return [{"isValid": i in valid_indexes, "reason": "후기" if i in valid_indexes else "광고"} for i in range(total)]


def _pipeline(store, search, llm):
    return SearchPipeline(
        store=store,
        retriever=CandidateRetriever(search, max_results=10),
        relevance_filter=RelevanceFilter(llm, "filter-model"),
        writer=IngestionWriter(store),
        keyword_generator=KeywordGenerator(llm, "keyword-model"),
    )


@pytest.mark.asyncio
async def test_search_end_to_end():
    store = InMemoryStore()
    search = FakeSearchClient(make_candidates(10))
    llm = ScriptedLLM(verdicts({1, 3, 5, 7}, 10))

    outcome = await _pipeline(store, search, llm).search(
        base_term="올리브영",
        addendum="브링그린, 후기",
        period=SearchPeriod.M1,
        user_id="user-1",
        project_id="p-1",
    )

    assert search.calls[0]["query"] == "올리브영 (브링그린 OR 후기)"
    assert search.calls[0]["period"] is SearchPeriod.M1
    assert outcome.report.to_counts() == {"totalFound": 10, "validResults": 4, "savedToDatabase": 4}
    assert all(row["status"] == "pending" for row in store.documents.values())
    assert {row["keyword"] for row in store.documents.values()} == {"올리브영 (브링그린 OR 후기)"}
    assert {row["search_period"] for row in store.documents.values()} == {"m1"}

    data = outcome.to_dict()
    assert data["displayName"] == "올리브영 브링그린, 후기"
    assert [r["url"] for r in data["results"]] == [f"https://cafe.example.com/post/{i}" for i in (1, 3, 5, 7)]

    assert store.keywords[0]["keyword"] == "올리브영 (브링그린 OR 후기)"
    assert store.keywords[0]["source"] == KeywordSource.MANUAL.value


@pytest.mark.asyncio
async def test_no_candidates_short_circuits():
    store = InMemoryStore()
    llm = ScriptedLLM([])

    outcome = await _pipeline(store, FakeSearchClient([]), llm).search(base_term="올리브영")

    assert outcome.message == "No search results found"
    assert outcome.report.to_counts() == {"totalFound": 0, "validResults": 0, "savedToDatabase": 0}
    assert llm.messages.calls == []
    assert store.documents == {}


@pytest.mark.asyncio
async def test_duplicate_links_are_saved_once():
    store = InMemoryStore()
    candidates = make_candidates(2) + make_candidates(1)
    llm = ScriptedLLM(verdicts({0, 1, 2}, 3))

    outcome = await _pipeline(store, FakeSearchClient(candidates), llm).search(base_term="토너")

    assert outcome.report.valid_results == 3
    assert outcome.report.saved_to_database == 2
    assert len(store.documents) == 2


@pytest.mark.asyncio
async def test_failed_insert_is_counted_not_raised():
    store = InMemoryStore()
    candidates = make_candidates(3)
    store.fail_insert_urls.add(candidates[1].link)
    llm = ScriptedLLM(verdicts({0, 1, 2}, 3))

    outcome = await _pipeline(store, FakeSearchClient(candidates), llm).search(base_term="토너")

    assert outcome.report.saved_to_database == 2
    assert outcome.report.failed == 1


@pytest.mark.asyncio
async def test_rate_limited_filter_reports_partial_counts():
    store = InMemoryStore()
    llm = ScriptedLLM([{"isValid": True, "reason": "후기"}, RateLimitError()])

    with pytest.raises(RateLimitError) as excinfo:
        await _pipeline(store, FakeSearchClient(make_candidates(5)), llm).search(base_term="토너")

    assert excinfo.value.to_payload()["totalFound"] == 5
    assert store.documents == {}


@pytest.mark.asyncio
async def test_empty_query_is_rejected_before_any_call():
    store = InMemoryStore()
    search = FakeSearchClient(make_candidates(1))
    with pytest.raises(EmptyQueryError):
        await _pipeline(store, search, ScriptedLLM([])).search(base_term="  ", addendum="")
    assert search.calls == []


@pytest.mark.asyncio
async def test_saved_keyword_id_supplies_base_term():
    store = InMemoryStore()
    saved = await store.record_search("올리브영", user_id="user-1")
    search = FakeSearchClient([])

    await _pipeline(store, search, ScriptedLLM([])).search(keyword_id=saved.id, addendum="신제품")

    assert search.calls[0]["query"] == "올리브영 신제품"


@pytest.mark.asyncio
async def test_unknown_keyword_id():
    store = InMemoryStore()
    with pytest.raises(DocumentNotFoundError):
        await _pipeline(store, FakeSearchClient([]), ScriptedLLM([])).search(keyword_id="kw-x", addendum="후기")


@pytest.mark.asyncio
async def test_natural_mode_uses_extracted_query():
    store = InMemoryStore()
    search = FakeSearchClient([])
    llm = ScriptedLLM([
        tool_response(
            "generate_search_query",
            {"searchQuery": "올리브영 AND 신제품 AND 후기", "keywords": ["올리브영", "신제품", "후기"]},
        )
    ])

    outcome = await _pipeline(store, search, llm).search(addendum="올리브영 신제품 후기 알려줘", mode="natural")

    assert search.calls[0]["query"] == "올리브영 AND 신제품 AND 후기"
    assert outcome.query.display_name == "올리브영 신제품 후기 알려줘"
    assert store.keywords[0]["source"] == KeywordSource.AUTO.value
    assert llm.messages.calls[0]["tool_choice"] == "generate_search_query"


@pytest.mark.asyncio
async def test_guided_with_info_types_runs_one_query():
    store = InMemoryStore()
    search = FakeSearchClient(make_candidates(2))
    llm = ScriptedLLM(verdicts({0}, 2))

    runs = await _pipeline(store, search, llm).run_guided(
        company="올리브영", product="브링그린", info_types=["후기", "가격"]
    )

    assert len(runs) == 1
    assert search.calls[0]["query"] == "(올리브영 AND 브링그린 AND 후기) OR (올리브영 AND 브링그린 AND 가격)"
    assert runs[0].display_name == "올리브영 브링그린 (후기, 가격)"
    assert runs[0].to_dict()["result"]["savedToDatabase"] == 1
    assert store.keywords[0]["source"] == KeywordSource.GUIDED_SEARCH.value


@pytest.mark.asyncio
async def test_guided_without_info_types_isolates_failing_queries():
    generated = {
        "keywords": [
            {"searchQuery": "올리브영 AND 브링그린 AND 후기", "displayName": "후기"},
            {"searchQuery": "올리브영 AND 브링그린 AND 가격", "displayName": "가격"},
            {"searchQuery": "올리브영 AND 브링그린 AND 불만", "displayName": "불만"},
        ]
    }

    def responder(call):
        if call.get("tools"):
            return tool_response("generate_keywords", generated)
        return {"isValid": True, "reason": "후기"}

    class FlakySearch(FakeSearchClient):
        async def search(self, query, *, period=None, max_results=None):
            if "가격" in query:
                self.calls.append({"query": query})
                raise QuotaExceededError(details={"provider": "google"})
            return await super().search(query, period=period, max_results=max_results)

    store = InMemoryStore()
    search = FlakySearch(make_candidates(1))
    runs = await _pipeline(store, search, ScriptedLLM(responder=responder)).run_guided(
        company="올리브영", product="브링그린", info_types=[]
    )

    assert [r.display_name for r in runs] == ["후기", "가격", "불만"]
    assert [r.error is None for r in runs] == [True, False, True]
    assert runs[1].to_dict()["error"]["reason"] == "quota_exhausted"
    assert {k["source"] for k in store.keywords} == {KeywordSource.AUTO_GENERATED.value}
    # the same link from two queries is stored per keyword
    assert len(store.documents) == 2
