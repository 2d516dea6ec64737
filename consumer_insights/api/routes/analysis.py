from __future__ import annotations

from fastapi import APIRouter, Depends

from consumer_insights.api.deps import get_container
from consumer_insights.container import ServiceContainer
from consumer_insights.errors import MissingSelectionError
from consumer_insights.models.schemas import (
    AdvancedInsightRequest,
    BackfillResponse,
    BatchRequest,
    BatchResponse,
    FirstStageRequest,
    FirstStageResponse,
    MaintenanceRequest,
    ReviewInsightsRequest,
)

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/documents/{document_id}/analyze")
async def analyze_document(document_id: str, container: ServiceContainer = Depends(get_container)):
    outcome = await container.deep_analyzer.analyze(document_id)
    return {"message": "Crawl and analysis completed", **outcome.to_dict()}


@router.post("/batch", response_model=BatchResponse)
async def run_batch(request: BatchRequest, container: ServiceContainer = Depends(get_container)):
    report = await container.batch.run(
        document_ids=request.document_ids,
        keyword=request.keyword,
        user_id=request.user_id,
    )
    return report.to_dict()


@router.post("/analysis/first-stage", response_model=FirstStageResponse)
async def first_stage(request: FirstStageRequest, container: ServiceContainer = Depends(get_container)):
    """Aggregate report over titles/snippets, served from cache when possible."""
    if request.document_ids:
        documents = await container.store.get_documents(request.document_ids)
    elif request.keyword or request.project_id:
        documents = await container.store.list_documents(
            user_id=request.user_id,
            keyword=request.keyword,
            project_id=request.project_id,
        )
    else:
        raise MissingSelectionError("document_ids, keyword or project_id is required")

    report = await container.aggregate_analyzer.run(
        user_id=request.user_id,
        documents=documents,
        keyword=request.keyword,
        search_period=request.search_period,
        fill_gaps=request.project_id is not None,
    )
    return {
        "cache_key": report.cache_key,
        "cached": report.cached,
        "result_count": report.result_count,
        "analysis_data": report.analysis_data,
        "trend_data": report.trend_data,
    }


@router.post("/insights/advanced")
async def advanced_insights(request: AdvancedInsightRequest, container: ServiceContainer = Depends(get_container)):
    insight = await container.premium_analyzer.generate(
        keyword=request.keyword,
        user_id=request.user_id,
        project_id=request.project_id,
        search_period=request.search_period,
    )
    return {"message": "Advanced insights generated successfully", "insights": insight}


@router.get("/insights/advanced/latest")
async def latest_advanced_insight(
    keyword: str,
    user_id: str,
    container: ServiceContainer = Depends(get_container),
):
    return {"insights": await container.store.latest_advanced_insight(keyword, user_id)}


@router.post("/maintenance/extract-dates", response_model=BackfillResponse)
async def extract_dates(request: MaintenanceRequest, container: ServiceContainer = Depends(get_container)):
    report = await container.date_backfill.extract_from_snippets(user_id=request.user_id)
    return report.to_dict()


@router.post("/maintenance/reanalyze-dates", response_model=BackfillResponse)
async def reanalyze_dates(request: MaintenanceRequest, container: ServiceContainer = Depends(get_container)):
    report = await container.date_backfill.reanalyze_missing(user_id=request.user_id)
    return report.to_dict()


@router.post("/reviews/analyze")
async def analyze_reviews(request: ReviewInsightsRequest, container: ServiceContainer = Depends(get_container)):
    """Insights over uploaded review texts; nothing is persisted."""
    insights = await container.review_insights.analyze(request.reviews)
    return insights.model_dump(by_alias=True)
