"""
Network API

Stats, second-degree discovery, introduction paths and stale contacts.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from kue.dependencies import Services, get_services
from kue.middleware.auth import verify_supabase_token, get_user_id

router = APIRouter(prefix="/network", tags=["network"])


@router.get("")
async def network_overview(
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    stats = await services.traversal.get_stats(get_user_id(token_payload))
    return asdict(stats)


@router.get("/second-degree")
async def second_degree(
    limit: int = Query(50, ge=1, le=200),
    min_strength: float = Query(0.0, ge=0.0, le=100.0),
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    nodes = await services.traversal.find_second_degree(
        get_user_id(token_payload), limit=limit, min_strength=min_strength
    )
    return {"connections": [asdict(n) for n in nodes], "total": len(nodes)}


@router.get("/intro-path")
async def intro_path(
    target_id: str = Query(..., min_length=1),
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    path = await services.traversal.find_intro_path(get_user_id(token_payload), target_id)
    if path is None:
        raise HTTPException(status_code=404, detail="No introduction path found")
    return {
        "nodes": [asdict(n) for n in path.nodes],
        "total_strength": path.total_strength,
        "path_length": path.hops,
    }


@router.get("/stale")
async def stale_contacts(
    stale_days: Optional[int] = Query(None, ge=1),
    max_score: Optional[float] = Query(None, ge=0.0, le=100.0),
    limit: Optional[int] = Query(None, ge=1, le=500),
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    settings = services.settings
    stale = await services.scoring.find_stale(
        get_user_id(token_payload),
        stale_days=stale_days or settings.stale_days,
        max_score=max_score if max_score is not None else settings.stale_max_score,
        limit=limit or settings.stale_limit,
    )
    return {"contacts": [asdict(s) for s in stale], "total": len(stale)}
