from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from kue.dependencies import Services, get_services
from kue.middleware.auth import verify_supabase_token, get_user_id

router = APIRouter(tags=["search"])


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, description="Search query in natural language")
    format: bool = True
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=50)


class SearchResponse(BaseModel):
    query: str
    intent: dict[str, Any]
    results: list[dict[str, Any]]
    total_results: int
    summary: str
    timings: dict[str, int]


def _response(result) -> SearchResponse:
    data = asdict(result)
    data["intent"] = result.intent.model_dump(by_alias=True, exclude_none=True)
    return SearchResponse(**data)


@router.post("/search", response_model=SearchResponse)
async def search_network(
    request: SearchRequest,
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    """
    Search the user's network in natural language.
    """
    user_id = get_user_id(token_payload)
    result = await services.search.search(
        user_id, request.query, format=request.format, page=request.page, limit=request.limit
    )
    return _response(result)


@router.get("/search/quick", response_model=SearchResponse)
async def quick_search(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    """Search without the summary step, for typeahead."""
    result = await services.search.quick_search(get_user_id(token_payload), q, limit=limit)
    return _response(result)


@router.get("/search/suggestions")
async def search_suggestions(
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    suggestions = await services.search.suggestions(get_user_id(token_payload))
    return {"suggestions": suggestions}
