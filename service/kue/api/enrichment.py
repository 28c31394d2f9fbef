"""
Enrichment API
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from kue.dependencies import Services, get_services
from kue.middleware.auth import verify_supabase_token, get_user_id

router = APIRouter(prefix="/enrich", tags=["enrichment"])


class BatchEnrichRequest(BaseModel):
    limit: int = Field(50, ge=1, le=500)
    force_refresh: bool = False


@router.get("/status")
async def enrichment_status(
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    return await services.enrichment.status(get_user_id(token_payload))


@router.post("/batch")
async def enrich_batch(
    request: BatchEnrichRequest,
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    result = await services.enrichment.enrich_batch(
        get_user_id(token_payload), limit=request.limit, force_refresh=request.force_refresh
    )
    return asdict(result)


@router.post("/{person_id}")
async def enrich_person(
    person_id: str,
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    result = await services.enrichment.enrich_person(get_user_id(token_payload), person_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Person not found")
    return asdict(result)
