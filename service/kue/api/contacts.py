from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from kue.dependencies import Services, get_services
from kue.middleware.auth import verify_supabase_token, get_user_id
from kue.schemas import Contact, Interaction

router = APIRouter(prefix="/contacts", tags=["contacts"])


class IngestRequest(BaseModel):
    contacts: list[Contact] = Field(..., max_length=5000)
    interactions: Optional[list[Interaction]] = None


@router.post("/ingest")
async def ingest_contacts(
    request: IngestRequest,
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    """
    Ingest one batch of normalized contacts.

    Per-contact failures are reported in `failed` / `errors`; the batch
    itself still succeeds.
    """
    result = await services.ingestion.ingest(
        get_user_id(token_payload),
        token_payload.get("email") or "",
        request.contacts,
        request.interactions,
    )
    return {"success": result.success, **asdict(result)}
