"""
Ingestion Service

Writes a batch of normalized contacts from one source into the owner's
graph: dedup, Person upsert, KNOWS counters, Company + WORKS_AT, rescoring.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from ..graph.models import InteractionSummary
from ..graph.store import GraphStore, bounded
from ..schemas import Contact, Interaction
from ..utils.normalize import extract_domain, normalize_email, normalize_linkedin_url
from .dedup import DeduplicationService
from .scoring import ScoringService

logger = logging.getLogger("kue.ingest")


@dataclass
class IngestResult:
    received: int = 0
    deduplicated: int = 0
    new_persons: int = 0
    updated_persons: int = 0
    new_companies: int = 0
    relationships: int = 0
    failed: int = 0
    # email -> error message
    errors: dict[str, str] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        # Per-contact failures are reported, not fatal
        return True


def summarize_interactions(interactions: list[Interaction]) -> dict[str, InteractionSummary]:
    """Aggregate touchpoints per normalized email."""
    summaries: dict[str, InteractionSummary] = {}
    for item in interactions:
        email = normalize_email(item.email)
        summary = summaries.get(email)
        if summary is None:
            summary = InteractionSummary(
                interaction_count=0,
                first_contact=item.occurred_at,
                last_contact=item.occurred_at,
            )
            summaries[email] = summary

        summary.interaction_count += 1
        if item.kind == "email":
            if item.direction == "sent":
                summary.emails_sent += 1
            elif item.direction == "received":
                summary.emails_received += 1
        elif item.kind == "meeting":
            summary.meeting_count += 1

        summary.first_contact = min(summary.first_contact, item.occurred_at)
        summary.last_contact = max(summary.last_contact, item.occurred_at)
    return summaries


class IngestionService:
    def __init__(
        self,
        store: GraphStore,
        dedup: DeduplicationService,
        scoring: ScoringService,
        timeout: float = 10.0,
    ):
        self.store = store
        self.dedup = dedup
        self.scoring = scoring
        self.timeout = timeout

    async def ingest(
        self,
        owner_id: str,
        owner_email: str,
        contacts: list[Contact],
        interactions: Optional[list[Interaction]] = None,
    ) -> IngestResult:
        """
        Ingest one batch.

        A failure on one contact is logged, counted in `failed` and recorded in
        `errors`; the rest of the batch continues. Graph outages during the
        dedup step propagate as UpstreamUnavailable.
        """
        start = time.monotonic()
        result = IngestResult(received=len(contacts))

        await bounded(self.store.ensure_user(owner_id, owner_email), self.timeout, "ensure_user")

        unique = await self.dedup.deduplicate(contacts, owner_id)
        result.deduplicated = len(unique)
        summaries = summarize_interactions(interactions or [])

        ingested: list[str] = []
        for contact in unique:
            try:
                await self._ingest_contact(owner_id, contact, summaries, result)
                ingested.append(contact.email)
            except Exception as e:
                logger.error(f"[INGEST] Failed to ingest contact {contact.email}: {e}")
                result.failed += 1
                result.errors[contact.email] = str(e)

        for email in ingested:
            try:
                await self.scoring.score_one(owner_id, email)
            except Exception as e:
                logger.warning(f"[INGEST] Rescoring failed for {email}: {e}")

        result.duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[INGEST] Batch complete owner={owner_id} received={result.received} "
            f"unique={result.deduplicated} new={result.new_persons} updated={result.updated_persons} "
            f"failed={result.failed} duration_ms={result.duration_ms}"
        )
        return result

    async def _ingest_contact(
        self,
        owner_id: str,
        contact: Contact,
        summaries: dict[str, InteractionSummary],
        result: IngestResult,
    ) -> None:
        if contact.linkedin_url:
            contact = contact.model_copy(update={"linkedin_url": normalize_linkedin_url(contact.linkedin_url)})

        person = await bounded(self.store.upsert_person(contact, owner_id), self.timeout, "upsert_person")
        if person.is_new:
            result.new_persons += 1
        else:
            result.updated_persons += 1

        # No interaction data: the contact itself is one observation "now"
        summary = summaries.get(person.email) or InteractionSummary()
        await bounded(
            self.store.upsert_knows(owner_id, person.id, contact.source, summary), self.timeout, "upsert_knows"
        )
        result.relationships += 1

        if contact.company:
            domain = extract_domain(contact.email, self.dedup.placeholder_domain)
            company = await bounded(
                self.store.upsert_company(contact.company, domain), self.timeout, "upsert_company"
            )
            if company.is_new:
                result.new_companies += 1
            await bounded(
                self.store.upsert_works_at(person.id, company.id), self.timeout, "upsert_works_at"
            )
