"""
Maintenance Runner

Scheduled sweep over every user: rescoring, duplicate merging and stale
contact detection. Collaborators are passed in by the caller.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from ..graph.store import GraphStore, bounded
from .dedup import DeduplicationService
from .jobs import JobTracker
from .scoring import ScoringService

logger = logging.getLogger("kue.maintenance")

# sync_jobs.job_type has no dedicated maintenance value
MAINTENANCE_JOB_TYPE = "full_sync"
# Rescore, dedup, stale detection
MAINTENANCE_STAGES = 3

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"


@dataclass
class MaintenanceReport:
    status: str
    users_processed: int = 0
    total_scored: int = 0
    total_merged: int = 0
    total_stale: int = 0
    # user_id -> ["<stage>: <error>", ...]
    failures: dict[str, list[str]] = field(default_factory=dict)
    duration_ms: int = 0


class MaintenanceRunner:
    def __init__(
        self,
        store: GraphStore,
        scoring: ScoringService,
        dedup: DeduplicationService,
        tracker: Optional[JobTracker] = None,
        stale_days: int = 90,
        stale_max_score: float = 20.0,
        stale_limit: int = 100,
        timeout: float = 10.0,
    ):
        self.store = store
        self.scoring = scoring
        self.dedup = dedup
        self.tracker = tracker
        self.stale_days = stale_days
        self.stale_max_score = stale_max_score
        self.stale_limit = stale_limit
        self.timeout = timeout
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(self) -> MaintenanceReport:
        """
        One sweep over all users. Only one sweep runs at a time; a call made
        while another is active returns status "skipped" immediately.
        """
        if self._lock.locked():
            logger.info("[MAINTENANCE] Sweep already running, skipping")
            return MaintenanceReport(status=STATUS_SKIPPED)

        async with self._lock:
            return await self._sweep()

    async def _sweep(self) -> MaintenanceReport:
        start = time.monotonic()
        report = MaintenanceReport(status=STATUS_COMPLETED)

        users = await bounded(self.store.list_users(), self.timeout, "list_users")
        logger.info(f"[MAINTENANCE] Found {len(users)} users")

        for user in users:
            job_id = (
                self.tracker.start(user.id, MAINTENANCE_JOB_TYPE, total_items=MAINTENANCE_STAGES)
                if self.tracker else None
            )
            errors = await self._process_user(user.id, report, job_id)

            if errors:
                report.failures[user.id] = errors
                if self.tracker:
                    self.tracker.fail(job_id, "; ".join(errors))
            elif self.tracker:
                self.tracker.complete(job_id)
            report.users_processed += 1

        report.duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[MAINTENANCE] Daily maintenance complete users={report.users_processed} "
            f"scored={report.total_scored} merged={report.total_merged} stale={report.total_stale} "
            f"failed_users={len(report.failures)} duration_ms={report.duration_ms}"
        )
        return report

    async def _process_user(
        self, user_id: str, report: MaintenanceReport, job_id: Optional[str] = None
    ) -> list[str]:
        """Each stage is isolated; returns the stage errors for this user."""
        errors: list[str] = []

        try:
            summary = await self.scoring.score_all(user_id)
            report.total_scored += summary.scored
        except Exception as e:
            logger.error(f"[MAINTENANCE] Failed to rescore user={user_id}: {e}")
            errors.append(f"scoring: {e}")
        self._stage_done(job_id, 1)

        try:
            sweep = await self.dedup.find_and_merge_duplicates(user_id)
            report.total_merged += sweep.merged_count
            if sweep.merged_count:
                logger.info(f"[MAINTENANCE] Merged {sweep.merged_count} duplicates user={user_id}")
        except Exception as e:
            logger.error(f"[MAINTENANCE] Failed to dedup user={user_id}: {e}")
            errors.append(f"dedup: {e}")
        self._stage_done(job_id, 2)

        try:
            stale = await self.scoring.find_stale(
                user_id,
                stale_days=self.stale_days,
                max_score=self.stale_max_score,
                limit=self.stale_limit,
            )
            report.total_stale += len(stale)
            if stale:
                examples = ", ".join(f"{s.email} ({s.days_since_contact}d, {s.score})" for s in stale[:3])
                logger.info(f"[MAINTENANCE] Found {len(stale)} stale contacts user={user_id}: {examples}")
        except Exception as e:
            logger.error(f"[MAINTENANCE] Failed to find stale contacts user={user_id}: {e}")
            errors.append(f"stale: {e}")
        self._stage_done(job_id, 3)

        return errors

    def _stage_done(self, job_id: Optional[str], stages_done: int) -> None:
        if self.tracker:
            self.tracker.progress(job_id, stages_done, MAINTENANCE_STAGES)
