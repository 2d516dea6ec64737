from __future__ import annotations

import pytest

from consumer_insights.agents.review_insights import ReviewInsightsAnalyzer
from consumer_insights.config import Settings
from consumer_insights.errors import MalformedResponseError, NoDataAvailableError
from tests.fakes import ScriptedLLM

INSIGHTS = {
    "sentiment": [
        {"label": "긍정", "count": 6},
        {"label": "부정", "count": 2},
        {"label": "중립", "count": 2},
    ],
    "topics": [{"topic": "보습", "count": 5}, {"topic": "향", "count": 3}],
    "personas": ["건성 피부 직장인", "가성비 중시 대학생", "성분 꼼꼼 확인형"],
    "networkGraph": {
        "nodes": [{"id": "보습", "label": "보습"}, {"id": "향", "label": "향"}],
        "edges": [{"source": "보습", "target": "향"}],
    },
}


def _analyzer(llm, **overrides):
    return ReviewInsightsAnalyzer(llm, "summary-model", settings=Settings(_env_file=None, **overrides))


@pytest.mark.asyncio
async def test_returns_validated_insights():
    llm = ScriptedLLM([INSIGHTS])

    insights = await _analyzer(llm).analyze(["보습력이 좋아요", "향이 진해요"])

    assert insights.model_dump(by_alias=True)["networkGraph"]["edges"] == [{"source": "보습", "target": "향"}]
    assert [s.count for s in insights.sentiment] == [6, 2, 2]
    assert len(insights.personas) == 3
    prompt = llm.messages.calls[0]["messages"][0]["content"]
    assert "보습력이 좋아요\n\n향이 진해요" in prompt


@pytest.mark.asyncio
async def test_blank_reviews_are_rejected_without_a_model_call():
    llm = ScriptedLLM([])

    with pytest.raises(NoDataAvailableError):
        await _analyzer(llm).analyze(["", "   "])
    assert llm.messages.calls == []


@pytest.mark.asyncio
async def test_prompt_uses_a_bounded_sample():
    llm = ScriptedLLM([INSIGHTS])
    reviews = [f"리뷰 {i:03d}" for i in range(200)]

    await _analyzer(llm, review_insights_prompt_reviews=5).analyze(reviews)

    prompt = llm.messages.calls[0]["messages"][0]["content"]
    assert "리뷰 004" in prompt
    assert "리뷰 005" not in prompt


def test_input_is_capped():
    analyzer = _analyzer(ScriptedLLM([]), review_insights_max_reviews=3)
    assert analyzer.prepare(["a", " ", "b", "c", "d"]) == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_non_json_output_is_malformed():
    with pytest.raises(MalformedResponseError):
        await _analyzer(ScriptedLLM(["분석 결과를 드릴 수 없습니다"])).analyze(["좋아요"])


@pytest.mark.asyncio
async def test_unknown_sentiment_label_is_malformed():
    broken = {**INSIGHTS, "sentiment": [{"label": "매우 긍정", "count": 1}]}
    with pytest.raises(MalformedResponseError):
        await _analyzer(ScriptedLLM([broken])).analyze(["좋아요"])
