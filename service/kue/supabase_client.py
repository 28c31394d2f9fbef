from typing import Optional

from supabase import create_client, Client
from kue.config import get_settings


def get_supabase_admin() -> Optional[Client]:
    """Service role client for job tracking. None when Supabase is not configured."""
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_role_key:
        return None
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key
    )
