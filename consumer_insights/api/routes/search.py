from __future__ import annotations

from fastapi import APIRouter, Depends

from consumer_insights.api.deps import get_container
from consumer_insights.container import ServiceContainer
from consumer_insights.models.schemas import (
    GuidedSearchRequest,
    KeywordGenerationRequest,
    QueryExtractionRequest,
    SearchRequest,
    SearchResponse,
)

router = APIRouter(prefix="/api", tags=["search"])


@router.post("/search", response_model=SearchResponse)
async def search(request: SearchRequest, container: ServiceContainer = Depends(get_container)):
    """Compile the query, then retrieve, filter and store candidates."""
    outcome = await container.search.search(
        base_term=request.base_term,
        addendum=request.addendum,
        keyword_id=request.keyword_id,
        mode=request.mode,
        period=request.period,
        user_id=request.user_id,
        project_id=request.project_id,
    )
    return outcome.to_dict()


@router.post("/search/guided")
async def guided_search(request: GuidedSearchRequest, container: ServiceContainer = Depends(get_container)):
    runs = await container.search.run_guided(
        company=request.company,
        product=request.product,
        info_types=request.info_types,
        period=request.period,
        user_id=request.user_id,
        project_id=request.project_id,
    )
    return {
        "total": len(runs),
        "succeeded": sum(1 for run in runs if run.error is None),
        "runs": [run.to_dict() for run in runs],
    }


@router.post("/keywords/generate")
async def generate_keywords(request: KeywordGenerationRequest, container: ServiceContainer = Depends(get_container)):
    keywords = await container.keyword_generator.generate(request.company, request.product)
    return {"keywords": [k.model_dump(by_alias=True) for k in keywords]}


@router.post("/keywords/extract")
async def extract_keywords(request: QueryExtractionRequest, container: ServiceContainer = Depends(get_container)):
    return await container.keyword_generator.extract_search_query(request.query)
