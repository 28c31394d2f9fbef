from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from kue.dependencies import Services, get_services
from kue.middleware.auth import verify_supabase_token, get_user_id

router = APIRouter(prefix="/scoring", tags=["scoring"])


@router.post("/rescore")
async def rescore_all(
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    """Recompute strength for every contact of the current user."""
    summary = await services.scoring.score_all(get_user_id(token_payload))
    return asdict(summary)


@router.get("/{email}")
async def score_contact(
    email: str,
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    result = await services.scoring.score_one(get_user_id(token_payload), email)
    if result is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    return asdict(result)
