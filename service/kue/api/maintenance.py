from dataclasses import asdict

from fastapi import APIRouter, Depends

from kue.dependencies import Services, get_services
from kue.middleware.auth import verify_supabase_token

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/run")
async def run_maintenance(
    token_payload: dict = Depends(verify_supabase_token),
    services: Services = Depends(get_services),
):
    """Run the maintenance sweep now. Returns status "skipped" if one is already running."""
    report = await services.maintenance.run()
    return asdict(report)
