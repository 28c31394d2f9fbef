"""
Relationship Scoring Service

Computes a 0-100 strength score per KNOWS edge from raw interaction
counters. Scores are recomputed from the counters every time, so rescoring
is idempotent.
"""

import logging
import math
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..graph.models import RelationshipSignals, ScoreUpdate, StaleContact
from ..graph.store import GraphStore, bounded

logger = logging.getLogger("kue.scoring")


# Composite weights, must sum to 1.0
WEIGHTS = {
    "recency": 0.30,
    "frequency": 0.30,
    "reciprocity": 0.20,
    "diversity": 0.10,
    "duration": 0.10,
}

RECENCY_MAX_DAYS = 365
FREQUENCY_MAX = 100
DURATION_MAX_DAYS = 1825

# mail, contacts directory, calendar, linkedin
MAX_SOURCES = 4
CONTACTS_SOURCE = "google_contacts"
LINKEDIN_SOURCE = "linkedin"


@dataclass
class ScoreBreakdown:
    recency: float = 0.0
    frequency: float = 0.0
    reciprocity: float = 0.0
    diversity: float = 0.0
    duration: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass
class ScoreResult:
    person_id: str
    email: str
    score: float
    breakdown: ScoreBreakdown


@dataclass
class ScoringSummary:
    scored: int
    average_score: float
    duration_ms: int


def round2(value: float) -> float:
    """Round half up to 2 decimals."""
    return math.floor(value * 100 + 0.5) / 100


def _days_between(later: datetime, earlier: datetime) -> float:
    if earlier.tzinfo is None:
        earlier = earlier.replace(tzinfo=timezone.utc)
    return (later - earlier).total_seconds() / 86400


def calculate_breakdown(signals: RelationshipSignals, now: datetime) -> ScoreBreakdown:
    """Five sub-scores in [0, 1], each rounded to 2 decimals."""
    recency = 0.0
    if signals.last_contact:
        days_since_last = _days_between(now, signals.last_contact)
        recency = max(0.0, min(1.0, 1 - days_since_last / RECENCY_MAX_DAYS)) ** 0.5

    frequency = 0.0
    if signals.interaction_count > 0:
        frequency = min(1.0, math.log(signals.interaction_count + 1) / math.log(FREQUENCY_MAX + 1))

    reciprocity = 0.0
    sent, received = signals.emails_sent, signals.emails_received
    if sent + received > 0:
        ratio = min(sent, received) / max(sent, received)
        meeting_boost = 0.2 if signals.meeting_count > 0 else 0.0
        reciprocity = min(1.0, ratio + meeting_boost)
    elif signals.meeting_count > 0:
        # Meetings imply two-way contact even without email direction data
        reciprocity = 0.5

    unique_sources = set(signals.sources)
    source_score = len(unique_sources) / MAX_SOURCES
    channel_types = sum([
        sent > 0 or received > 0,
        signals.meeting_count > 0,
        LINKEDIN_SOURCE in unique_sources,
        CONTACTS_SOURCE in unique_sources,
    ])
    diversity = min(1.0, (source_score + channel_types / 4) / 2)

    duration = 0.0
    if signals.first_contact:
        days_known = _days_between(now, signals.first_contact)
        duration = max(0.0, min(1.0, days_known / DURATION_MAX_DAYS))

    return ScoreBreakdown(
        recency=round2(recency),
        frequency=round2(frequency),
        reciprocity=round2(reciprocity),
        diversity=round2(diversity),
        duration=round2(duration),
    )


def composite_score(breakdown: ScoreBreakdown) -> float:
    """Weighted sum on a 0-100 scale, 2 decimals."""
    total = sum(getattr(breakdown, name) * weight for name, weight in WEIGHTS.items())
    return round2(total * 100)


def score_signals(signals: RelationshipSignals, now: Optional[datetime] = None) -> ScoreResult:
    now = now or datetime.now(timezone.utc)
    breakdown = calculate_breakdown(signals, now)
    return ScoreResult(
        person_id=signals.person_id,
        email=signals.email,
        score=composite_score(breakdown),
        breakdown=breakdown,
    )


class ScoringService:
    """Scores KNOWS edges and reports stale relationships."""

    def __init__(self, store: GraphStore, timeout: float = 10.0):
        self.store = store
        self.timeout = timeout

    async def score_all(self, owner_id: str) -> ScoringSummary:
        """Rescore every KNOWS edge of one owner."""
        start = time.monotonic()

        signals = await bounded(
            self.store.list_relationship_signals(owner_id), self.timeout, "list_relationship_signals"
        )
        if not signals:
            logger.info(f"[SCORING] No contacts to score for owner={owner_id}")
            return ScoringSummary(scored=0, average_score=0.0, duration_ms=int((time.monotonic() - start) * 1000))

        now = datetime.now(timezone.utc)
        results = [score_signals(s, now) for s in signals]

        await bounded(
            self.store.update_scores(owner_id, [
                ScoreUpdate(person_id=r.person_id, score=r.score, breakdown=r.breakdown.to_dict())
                for r in results
            ]),
            self.timeout, "update_scores",
        )

        average = round2(sum(r.score for r in results) / len(results))
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[SCORING] Scoring complete owner={owner_id} scored={len(results)} "
            f"average={average} duration_ms={duration_ms}"
        )
        return ScoringSummary(scored=len(results), average_score=average, duration_ms=duration_ms)

    async def score_one(self, owner_id: str, email: str) -> Optional[ScoreResult]:
        """Rescore a single contact. None when the owner has no KNOWS edge to that email."""
        signals = await bounded(
            self.store.list_relationship_signals(owner_id, email=email), self.timeout,
            "list_relationship_signals",
        )
        if not signals:
            return None

        result = score_signals(signals[0])
        await bounded(
            self.store.update_scores(owner_id, [
                ScoreUpdate(person_id=result.person_id, score=result.score, breakdown=result.breakdown.to_dict())
            ]),
            self.timeout, "update_scores",
        )
        return result

    async def score_users(self, user_ids: list[str]) -> tuple[dict[str, ScoringSummary], dict[str, str]]:
        """
        Rescore several owners.

        A failing owner is logged and skipped. Returns (summaries, failures).
        """
        summaries: dict[str, ScoringSummary] = {}
        failures: dict[str, str] = {}
        for user_id in user_ids:
            try:
                summaries[user_id] = await self.score_all(user_id)
            except Exception as e:
                logger.error(f"[SCORING] Failed to score owner={user_id}: {e}")
                failures[user_id] = str(e)
        return summaries, failures

    async def find_stale(
        self,
        owner_id: str,
        stale_days: int = 90,
        max_score: float = 30.0,
        limit: int = 50,
    ) -> list[StaleContact]:
        """Contacts not reached in stale_days with strength <= max_score, weakest first."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=stale_days)
        return await bounded(
            self.store.find_stale(owner_id, cutoff, max_score, limit), self.timeout, "find_stale"
        )
