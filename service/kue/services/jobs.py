"""
Job tracking and search history, stored in Supabase.

Both are bookkeeping: a failed write is logged and never fails the
operation being tracked.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from supabase import Client

logger = logging.getLogger("kue.jobs")

SYNC_JOBS_TABLE = "sync_jobs"
SEARCH_HISTORY_TABLE = "search_history"

STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobTracker:
    """Writes sync_jobs rows for long-running work."""

    def __init__(self, client: Client):
        self.client = client

    def start(self, user_id: str, job_type: str, total_items: int = 0) -> Optional[str]:
        """Insert a running job row. Returns the job id, or None if the write failed."""
        try:
            result = self.client.table(SYNC_JOBS_TABLE).insert({
                "user_id": user_id,
                "job_type": job_type,
                "status": STATUS_RUNNING,
                "progress": 0,
                "total_items": total_items,
                "processed_items": 0,
                "started_at": _now(),
            }).execute()
        except Exception as e:
            logger.error(f"[JOBS] Failed to record {job_type} job start for user={user_id}: {e}")
            return None

        if not result.data:
            return None
        return result.data[0]["id"]

    def progress(self, job_id: Optional[str], processed_items: int, total_items: int) -> None:
        if not job_id:
            return
        percent = int(processed_items * 100 / total_items) if total_items else 0
        self._update(job_id, {
            "progress": max(0, min(100, percent)),
            "processed_items": processed_items,
            "total_items": total_items,
        })

    def complete(self, job_id: Optional[str], metadata: Optional[dict[str, Any]] = None) -> None:
        if not job_id:
            return
        self._update(job_id, {
            "status": STATUS_COMPLETED,
            "progress": 100,
            "completed_at": _now(),
            "metadata": metadata or {},
        })

    def fail(self, job_id: Optional[str], error_message: str) -> None:
        if not job_id:
            return
        self._update(job_id, {
            "status": STATUS_FAILED,
            "error_message": error_message[:1000],
            "completed_at": _now(),
        })

    def _update(self, job_id: str, fields: dict[str, Any]) -> None:
        try:
            self.client.table(SYNC_JOBS_TABLE).update(fields).eq("id", job_id).execute()
        except Exception as e:
            logger.error(f"[JOBS] Failed to update job {job_id}: {e}")


class SearchHistory:
    """Appends executed searches to search_history."""

    def __init__(self, client: Client):
        self.client = client

    def record(
        self,
        user_id: str,
        query: str,
        query_type: str,
        result_count: int,
        filters: Optional[dict[str, Any]] = None,
    ) -> None:
        try:
            self.client.table(SEARCH_HISTORY_TABLE).insert({
                "user_id": user_id,
                "query": query,
                "query_type": query_type,
                "result_count": result_count,
                "filters": filters or {},
            }).execute()
        except Exception as e:
            logger.warning(f"[JOBS] Failed to record search history for user={user_id}: {e}")
