"""
Tests for contact enrichment (PDL client and domain fallback).
"""

import httpx
import pytest

from kue.graph.memory_store import InMemoryGraphStore
from kue.graph.models import Person
from kue.schemas import Contact
from kue.services.enrichment import (
    SOURCE_API,
    SOURCE_FALLBACK,
    SOURCE_NONE,
    EnrichmentService,
    fallback_enrichment,
    map_pdl_person,
)
from kue.services.scoring import ScoringService

OWNER_ID = "user-1"

PDL_PERSON = {
    "job_title": "VP Engineering",
    "job_company_name": "Acme Corp",
    "location_name": "berlin, germany",
    "linkedin_url": "linkedin.com/in/ana-smith",
    "summary": "Builds things.",
    "job_company_website": "www.acme.com",
    "job_company_industry": "software",
    "job_company_size": "51-200",
}


def pdl_transport(status_code=200, payload=None, calls=None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if status_code == 200:
            return httpx.Response(200, json={"status": 200, "data": payload or PDL_PERSON})
        return httpx.Response(status_code, json={"error": {"type": "error"}})

    return httpx.MockTransport(handler)


def build_service(store, **kwargs) -> EnrichmentService:
    return EnrichmentService(store, ScoringService(store), **kwargs)


class TestMapPdlPerson:
    def test_maps_person_and_company_fields(self):
        mapped = map_pdl_person(PDL_PERSON)
        assert mapped == {
            "title": "VP Engineering",
            "company": "Acme Corp",
            "location": "berlin, germany",
            "linkedin_url": "linkedin.com/in/ana-smith",
            "bio": "Builds things.",
            "company_domain": "acme.com",
            "company_industry": "software",
            "company_size": "51-200",
        }

    def test_hidden_values_are_ignored(self):
        """PDL returns True for fields that exist but are not included in the plan."""
        mapped = map_pdl_person({"job_title": True, "location_name": False, "job_company_name": " "})
        assert mapped == {}

    def test_location_from_parts(self):
        mapped = map_pdl_person({"location_locality": "Berlin", "location_country": "Germany"})
        assert mapped["location"] == "Berlin, Germany"


class TestFallbackEnrichment:
    def test_company_from_work_domain(self):
        person = Person(id="p-1", owner_id=OWNER_ID, email="ana@acme.com")
        assert fallback_enrichment(person) == {"company": "Acme", "company_domain": "acme.com"}

    def test_personal_mailbox_gives_nothing(self):
        person = Person(id="p-1", owner_id=OWNER_ID, email="ana@gmail.com")
        assert fallback_enrichment(person) is None

    def test_existing_company_is_kept(self):
        person = Person(id="p-1", owner_id=OWNER_ID, email="ana@acme.com", company="Initech")
        assert fallback_enrichment(person) is None

    def test_placeholder_gives_nothing(self):
        person = Person(id="p-1", owner_id=OWNER_ID, email="ana.smith@linkedin.placeholder")
        assert fallback_enrichment(person, "linkedin.placeholder") is None


class TestEnrichPerson:
    @pytest.mark.asyncio
    async def test_unknown_person_returns_none(self, store):
        assert await build_service(store).enrich_person(OWNER_ID, "missing") is None

    @pytest.mark.asyncio
    async def test_fallback_without_api_key(self, store, seed):
        person = await seed("ana@acme.com", name="Ana")
        result = await build_service(store).enrich_person(OWNER_ID, person.id)

        assert result.source == SOURCE_FALLBACK
        assert result.enriched
        assert result.fields_updated == ["company"]
        assert store.persons[person.id].company == "Acme"
        assert store.persons[person.id].enriched_at is not None
        company = next(iter(store.companies.values()))
        assert company.domain == "acme.com"
        assert (person.id, company.id) in store.works_at

    @pytest.mark.asyncio
    async def test_nothing_found_still_stamps(self, store, seed):
        person = await seed("ana@gmail.com", name="Ana")
        result = await build_service(store).enrich_person(OWNER_ID, person.id)

        assert result.source == SOURCE_NONE
        assert not result.enriched
        assert store.persons[person.id].enriched_at is not None

    @pytest.mark.asyncio
    async def test_pdl_fills_only_empty_fields(self, store, seed):
        person = await seed("ana@acme.com", name="Ana", title="CTO")
        calls = []
        service = build_service(store, api_key="pdl-key", transport=pdl_transport(calls=calls))

        result = await service.enrich_person(OWNER_ID, person.id)

        assert result.source == SOURCE_API
        stored = store.persons[person.id]
        assert stored.title == "CTO"
        assert stored.company == "Acme Corp"
        assert stored.location == "berlin, germany"
        assert stored.bio == "Builds things."
        assert "title" not in result.fields_updated

        assert calls[0].headers["X-Api-Key"] == "pdl-key"
        assert calls[0].url.params["email"] == "ana@acme.com"

        company = next(iter(store.companies.values()))
        assert company.domain == "acme.com"
        assert company.industry == "software"
        assert company.size == "51-200"

    @pytest.mark.asyncio
    async def test_pdl_not_found_uses_fallback(self, store, seed):
        person = await seed("ana@acme.com")
        service = build_service(store, api_key="pdl-key", transport=pdl_transport(status_code=404))

        result = await service.enrich_person(OWNER_ID, person.id)

        assert result.source == SOURCE_FALLBACK
        assert store.persons[person.id].company == "Acme"

    @pytest.mark.asyncio
    async def test_pdl_error_uses_fallback(self, store, seed):
        person = await seed("ana@acme.com")
        service = build_service(store, api_key="pdl-key", transport=pdl_transport(status_code=500))

        result = await service.enrich_person(OWNER_ID, person.id)

        assert result.source == SOURCE_FALLBACK


class TestEnrichBatch:
    @pytest.mark.asyncio
    async def test_batch_skips_enriched_people(self, store, seed):
        await seed("ana@acme.com")
        await seed("bo@initech.com")
        service = build_service(store)

        first = await service.enrich_batch(OWNER_ID)
        second = await service.enrich_batch(OWNER_ID)

        assert first.processed == 2
        assert first.enriched == 2
        assert second.processed == 0

    @pytest.mark.asyncio
    async def test_force_refresh(self, store, seed):
        await seed("ana@acme.com")
        service = build_service(store)
        await service.enrich_batch(OWNER_ID)

        result = await service.enrich_batch(OWNER_ID, force_refresh=True)
        assert result.processed == 1

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self):
        class FlakyStore(InMemoryGraphStore):
            async def apply_person_enrichment(self, owner_id, person_id, fields):
                if self.persons[person_id].email == "bad@acme.com":
                    raise RuntimeError("write failed")
                return await super().apply_person_enrichment(owner_id, person_id, fields)

        flaky = FlakyStore()
        await flaky.ensure_user(OWNER_ID, "owner@kue.dev")
        for email in ("ana@acme.com", "bad@acme.com", "bo@initech.com"):
            await flaky.upsert_person(Contact(email=email, source="gmail"), OWNER_ID)

        result = await build_service(flaky, concurrency=2).enrich_batch(OWNER_ID)

        assert result.processed == 2
        assert result.failed == 1
        assert list(result.errors.values()) == ["write failed"]


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_counts(self, store, seed):
        ana = await seed("ana@acme.com")
        await seed("bo@initech.com")
        service = build_service(store)
        await service.enrich_person(OWNER_ID, ana.id)

        assert await service.status(OWNER_ID) == {
            "total": 2,
            "enriched": 1,
            "pending": 1,
            "percent_complete": 50,
        }

    @pytest.mark.asyncio
    async def test_empty_network(self, store):
        status = await build_service(store).status(OWNER_ID)
        assert status["percent_complete"] == 0
