"""
Deduplication API

Endpoints for the duplicate sweep and for reviewing name + company candidates.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from kue.dependencies import Services, get_services
from kue.middleware.auth import verify_supabase_token, get_user_id

router = APIRouter(prefix="/dedup", tags=["deduplication"])


@router.post("/sweep")
async def run_sweep(
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    """Merge exact-email duplicates and report name + company candidates."""
    result = await services.dedup.find_and_merge_duplicates(get_user_id(token_payload))
    return asdict(result)


@router.get("/candidates")
async def get_duplicate_candidates(
    limit: int = Query(100, ge=1, le=500),
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    groups = await services.dedup.find_candidates(get_user_id(token_payload), limit=limit)
    return {"candidates": [asdict(g) for g in groups], "total": len(groups)}
