"""
Enrichment Service

External data enrichment using People Data Labs API, with a domain-derived
fallback when no key is configured or the provider call fails.

Enrichment only fills empty fields; populated Person and Company fields are
never overwritten.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..graph.models import Person
from ..graph.store import GraphStore, bounded
from ..utils.normalize import extract_domain, normalize_linkedin_url
from .scoring import ScoringService

logger = logging.getLogger("kue.enrichment")

SOURCE_API = "api"
SOURCE_FALLBACK = "fallback"
SOURCE_NONE = "none"


@dataclass
class EnrichmentResult:
    """Result of enrichment attempt."""
    person_id: str
    email: str
    enriched: bool
    fields_updated: list[str] = field(default_factory=list)
    source: str = SOURCE_NONE


@dataclass
class BatchEnrichmentResult:
    processed: int = 0
    enriched: int = 0
    failed: int = 0
    # person_id -> error message
    errors: dict[str, str] = field(default_factory=dict)


def _safe_str(value: Any) -> Optional[str]:
    """
    Safely get string value from PDL field.

    PDL returns bool True for data that exists but is hidden, bool False for
    no data. Only real strings are used.
    """
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def map_pdl_person(data: dict[str, Any]) -> dict[str, Any]:
    """PDL person record -> person fields plus company_* fields."""
    location = _safe_str(data.get("location_name"))
    if not location:
        parts = [_safe_str(data.get("location_locality")), _safe_str(data.get("location_country"))]
        location = ", ".join(p for p in parts if p) or None

    linkedin = _safe_str(data.get("linkedin_url"))
    website = _safe_str(data.get("job_company_website"))

    mapped = {
        "title": _safe_str(data.get("job_title")),
        "company": _safe_str(data.get("job_company_name")),
        "location": location,
        "linkedin_url": normalize_linkedin_url(linkedin) if linkedin else None,
        "bio": _safe_str(data.get("summary")),
        "company_domain": website.lower().removeprefix("www.") if website else None,
        "company_industry": _safe_str(data.get("job_company_industry")),
        "company_size": _safe_str(data.get("job_company_size")),
    }
    return {k: v for k, v in mapped.items() if v}


def fallback_enrichment(person: Person, placeholder_domain: Optional[str] = None) -> Optional[dict[str, Any]]:
    """Derive company name and domain from a work email, when the person has no company."""
    domain = extract_domain(person.email, placeholder_domain)
    if not domain or person.company:
        return None
    guess = domain.split(".")[0]
    return {"company": guess[:1].upper() + guess[1:], "company_domain": domain}


class EnrichmentService:
    """Fills missing Person and Company fields from external data."""

    PDL_BASE_URL = "https://api.peopledatalabs.com/v5"

    def __init__(
        self,
        store: GraphStore,
        scoring: ScoringService,
        api_key: str = "",
        concurrency: int = 5,
        placeholder_domain: str = "linkedin.placeholder",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.scoring = scoring
        self.api_key = api_key
        self.concurrency = concurrency
        self.placeholder_domain = placeholder_domain
        self.timeout = timeout
        self.transport = transport

    async def _call_pdl_api(self, params: dict[str, str]) -> Optional[dict[str, Any]]:
        """Call People Data Labs person enrichment API."""
        if not self.api_key:
            return None

        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.get(
                f"{self.PDL_BASE_URL}/person/enrich",
                headers={"X-Api-Key": self.api_key},
                params=params,
                timeout=30.0,
            )

            if response.status_code == 200:
                return response.json()
            elif response.status_code == 404:
                return None  # Person not found
            else:
                raise httpx.HTTPStatusError(
                    f"PDL API error: {response.status_code} - {response.text}",
                    request=response.request,
                    response=response,
                )

    def _pdl_params(self, person: Person) -> dict[str, str]:
        params: dict[str, str] = {}
        if person.linkedin_url:
            params["profile"] = person.linkedin_url
        if person.email and not person.email.endswith(f"@{self.placeholder_domain}"):
            params["email"] = person.email
        if not params and person.first_name and person.last_name:
            params["first_name"] = person.first_name
            params["last_name"] = person.last_name
            if person.company:
                params["company"] = person.company
        return params

    async def _fetch(self, person: Person) -> tuple[Optional[dict[str, Any]], str]:
        if self.api_key:
            params = self._pdl_params(person)
            if params:
                try:
                    payload = await self._call_pdl_api(params)
                    if payload:
                        return map_pdl_person(payload.get("data", payload)), SOURCE_API
                except Exception as e:
                    logger.warning(f"[ENRICH] PDL call failed for {person.email}, using fallback: {e}")
        else:
            logger.debug("[ENRICH] No enrichment API key configured, using fallback enrichment")

        data = fallback_enrichment(person, self.placeholder_domain)
        return data, SOURCE_FALLBACK if data else SOURCE_NONE

    async def enrich_person(self, owner_id: str, person_id: str) -> Optional[EnrichmentResult]:
        """Enrich one Person. None when the person is not in the owner's graph."""
        person = await bounded(self.store.get_person(person_id, owner_id), self.timeout, "get_person")
        if person is None:
            logger.warning(f"[ENRICH] Person not found for enrichment person={person_id} owner={owner_id}")
            return None

        data, source = await self._fetch(person)
        data = data or {}

        # Stamps enriched_at even when nothing was found, so batches move on
        fields_updated = await bounded(
            self.store.apply_person_enrichment(owner_id, person_id, data), self.timeout,
            "apply_person_enrichment",
        )

        company_name = person.company or data.get("company")
        if company_name and data.get("company_domain"):
            company = await bounded(
                self.store.upsert_company(company_name, data["company_domain"]), self.timeout, "upsert_company"
            )
            await bounded(self.store.upsert_works_at(person_id, company.id), self.timeout, "upsert_works_at")
            await bounded(
                self.store.enrich_company(company_name, {
                    "domain": data.get("company_domain"),
                    "industry": data.get("company_industry"),
                    "size": data.get("company_size"),
                }),
                self.timeout, "enrich_company",
            )

        if fields_updated:
            try:
                await self.scoring.score_one(owner_id, person.email)
            except Exception as e:
                logger.warning(f"[ENRICH] Rescoring failed for {person.email}: {e}")

        logger.info(
            f"[ENRICH] Contact enriched person={person_id} source={source} fields={fields_updated}"
        )
        return EnrichmentResult(
            person_id=person_id,
            email=person.email,
            enriched=bool(fields_updated),
            fields_updated=fields_updated,
            source=source,
        )

    async def enrich_batch(
        self, owner_id: str, limit: int = 50, force_refresh: bool = False
    ) -> BatchEnrichmentResult:
        """Enrich up to `limit` un-enriched people, at most `concurrency` at a time."""
        people = await bounded(
            self.store.list_unenriched(owner_id, limit=limit, force_refresh=force_refresh), self.timeout,
            "list_unenriched",
        )
        result = BatchEnrichmentResult()
        if not people:
            logger.info(f"[ENRICH] No contacts to enrich owner={owner_id}")
            return result

        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(person: Person) -> None:
            async with semaphore:
                try:
                    outcome = await self.enrich_person(owner_id, person.id)
                except Exception as e:
                    logger.error(f"[ENRICH] Enrichment failed for person={person.id}: {e}")
                    result.failed += 1
                    result.errors[person.id] = str(e)
                    return
                result.processed += 1
                if outcome is not None and outcome.enriched:
                    result.enriched += 1

        await asyncio.gather(*(run(p) for p in people))
        logger.info(
            f"[ENRICH] Batch complete owner={owner_id} processed={result.processed} "
            f"enriched={result.enriched} failed={result.failed}"
        )
        return result

    async def status(self, owner_id: str) -> dict[str, int]:
        status = await bounded(self.store.enrichment_status(owner_id), self.timeout, "enrichment_status")
        return {
            "total": status.total,
            "enriched": status.enriched,
            "pending": status.pending,
            "percent_complete": status.percent_complete,
        }
