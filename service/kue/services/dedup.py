"""
Deduplication Service

Merges incoming contacts against each other and against the stored graph,
and runs the maintenance sweep over existing Person nodes.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from ..errors import UpstreamUnavailable
from ..graph.models import DuplicateGroup, Person
from ..graph.store import GraphStore, bounded
from ..schemas import Contact
from ..utils.normalize import is_placeholder_email, normalize_email
from .merge_policy import BATCH_MERGE_POLICY, CONTACT_MERGE_POLICY, merge_contacts

logger = logging.getLogger("kue.dedup")


@dataclass
class SweepResult:
    """Result of a maintenance dedup sweep for one owner."""
    email_groups: int = 0
    merged_count: int = 0
    # name + company groups are reported, never merged automatically
    candidates: list[DuplicateGroup] = field(default_factory=list)
    duration_ms: int = 0


def person_to_contact(person: Person, fallback_source: str) -> Contact:
    return Contact(
        email=person.email,
        name=person.name,
        first_name=person.first_name,
        last_name=person.last_name,
        phone=person.phone,
        company=person.company,
        title=person.title,
        linkedin_url=person.linkedin_url,
        source=person.source[0] if person.source else fallback_source,
    )


class DeduplicationService:
    """Layered identity matching for contacts and Person nodes."""

    def __init__(
        self,
        store: GraphStore,
        placeholder_domain: str = "linkedin.placeholder",
        timeout: float = 10.0,
    ):
        self.store = store
        self.placeholder_domain = placeholder_domain
        self.timeout = timeout

    def collapse_batch(self, contacts: list[Contact]) -> list[Contact]:
        """
        Collapse exact-email duplicates inside one batch.

        Later records' non-empty fields win; output keeps first-seen order.
        """
        by_email: dict[str, Contact] = {}
        for contact in contacts:
            key = normalize_email(contact.email)
            if not key:
                continue
            contact = contact.model_copy(update={"email": key})
            existing = by_email.get(key)
            by_email[key] = contact if existing is None else merge_contacts(existing, contact, BATCH_MERGE_POLICY)
        return list(by_email.values())

    async def deduplicate(self, contacts: list[Contact], owner_id: str) -> list[Contact]:
        """Canonical contact stream for ingestion. Unmatched placeholders are dropped."""
        start = time.monotonic()
        collapsed = self.collapse_batch(contacts)

        result = []
        merged = 0
        dropped = 0
        for contact in collapsed:
            try:
                match = await self._find_match(contact, owner_id)
            except UpstreamUnavailable:
                raise
            except Exception as e:
                logger.warning(f"[DEDUP] Lookup failed for {contact.email}: {e}")
                match = None

            if match is not None:
                result.append(merge_contacts(person_to_contact(match, contact.source), contact, CONTACT_MERGE_POLICY))
                merged += 1
            elif self.is_placeholder(contact.email):
                # No reliable identifier: never create a Person with a synthesized email
                dropped += 1
            else:
                result.append(contact)

        logger.info(
            f"[DEDUP] owner={owner_id} original={len(contacts)} deduped={len(result)} "
            f"merged={merged} dropped={dropped} duration_ms={int((time.monotonic() - start) * 1000)}"
        )
        return result

    def is_placeholder(self, email: str) -> bool:
        return is_placeholder_email(email, self.placeholder_domain)

    async def _find_match(self, contact: Contact, owner_id: str) -> Optional[Person]:
        if not self.is_placeholder(contact.email):
            return await bounded(
                self.store.find_person_by_email(contact.email, owner_id),
                self.timeout, "find_person_by_email",
            )

        if not contact.first_name or not contact.company:
            return None

        match = await bounded(
            self.store.find_person_by_name_company(owner_id, contact.first_name, contact.company),
            self.timeout, "find_person_by_name_company",
        )
        if match is None and contact.last_name:
            match = await bounded(
                self.store.find_person_by_name_company(
                    owner_id, contact.first_name, contact.company, last_name=contact.last_name
                ),
                self.timeout, "find_person_by_name_company",
            )
        return match

    async def find_and_merge_duplicates(self, owner_id: str) -> SweepResult:
        """
        Maintenance sweep.

        Exact-email groups are merged into their first (oldest) node.
        First name + company groups are only reported as candidates.
        """
        start = time.monotonic()

        email_groups = await bounded(
            self.store.find_email_duplicate_groups(owner_id), self.timeout, "find_email_duplicate_groups"
        )
        merged = 0
        for group in email_groups:
            keep_id, *remove_ids = group.person_ids
            merged += await bounded(
                self.store.merge_persons(owner_id, keep_id, remove_ids), self.timeout, "merge_persons"
            )
            logger.info(f"[DEDUP] Merged {len(remove_ids)} duplicate(s) of {group.key} into {keep_id}")

        candidates = await bounded(
            self.store.find_name_company_duplicate_groups(owner_id), self.timeout,
            "find_name_company_duplicate_groups",
        )

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"[DEDUP] Duplicate scan complete owner={owner_id} email_duplicates={len(email_groups)} "
            f"name_similar={len(candidates)} merged={merged} duration_ms={duration_ms}"
        )
        return SweepResult(
            email_groups=len(email_groups),
            merged_count=merged,
            candidates=candidates,
            duration_ms=duration_ms,
        )

    async def find_candidates(self, owner_id: str, limit: int = 100) -> list[DuplicateGroup]:
        """Name + company candidate groups, for review."""
        return await bounded(
            self.store.find_name_company_duplicate_groups(owner_id, limit=limit), self.timeout,
            "find_name_company_duplicate_groups",
        )
