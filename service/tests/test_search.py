"""
Tests for the natural-language search pipeline.

Uses the rule-based parser and the text summary (no API keys configured).
"""

import pytest

from kue.errors import IntentValidationError
from kue.graph.memory_store import InMemoryGraphStore
from kue.graph.models import KNOWS
from kue.services.query_compiler import QueryCompiler
from kue.services.query_parser import LLMQueryParser
from kue.services.result_formatter import ResultFormatter
from kue.services.search import FALLBACK_SUGGESTIONS, SearchService, paginate
from kue.services.traversal import TraversalService

OWNER_ID = "user-1"


class RecordingHistory:
    def __init__(self):
        self.rows = []

    def record(self, user_id, query, query_type, result_count, filters=None):
        self.rows.append((user_id, query, query_type, result_count, filters))


def build_service(store, history=None) -> SearchService:
    return SearchService(
        store,
        LLMQueryParser(api_key=""),
        QueryCompiler(),
        TraversalService(store),
        ResultFormatter(api_key=""),
        history=history,
    )


@pytest.fixture
def engineers(seed):
    async def _seed():
        await seed("ana@acme.com", name="Ana", title="Senior Engineer", company="Acme", strength=70.0)
        await seed("bo@acme.com", name="Bo", title="Engineer", company="Acme", strength=90.0)
        await seed("cy@acme.com", name="Cy", title="Staff Engineer", company="Acme", strength=20.0)
        await seed("di@initech.com", name="Di", title="Engineer", company="Initech", strength=50.0)
        await seed("eve@acme.com", name="Eve", title="Designer", company="Acme", strength=60.0)

    return _seed


class TestPaginate:
    def test_pages(self):
        rows = [{"i": i} for i in range(5)]
        assert paginate(rows, 1, 2) == [{"i": 0}, {"i": 1}]
        assert paginate(rows, 3, 2) == [{"i": 4}]
        assert paginate(rows, 4, 2) == []

    def test_page_below_one_is_first_page(self):
        assert paginate([{"i": 0}], 0, 10) == [{"i": 0}]


class TestSearch:
    @pytest.mark.asyncio
    async def test_person_search(self, store, engineers):
        await engineers()
        response = await build_service(store).search(OWNER_ID, "engineer at acme")

        assert response.intent.query_type == "person_search"
        assert [r["name"] for r in response.results] == ["Bo", "Ana", "Cy"]
        assert response.total_results == 3
        assert response.summary.startswith('Found 3 results for "engineer at acme".')
        assert set(response.timings) == {"parse_ms", "query_ms", "format_ms", "total_ms"}

    @pytest.mark.asyncio
    async def test_zero_results_suggests_broadening(self, store, engineers):
        await engineers()
        response = await build_service(store).search(OWNER_ID, "cto at globex")

        assert response.results == []
        assert response.total_results == 0
        assert "broadening" in response.summary

    @pytest.mark.asyncio
    async def test_pagination(self, store, engineers):
        await engineers()
        response = await build_service(store).search(OWNER_ID, "engineer at acme", page=2, limit=2)

        assert [r["name"] for r in response.results] == ["Cy"]
        assert response.total_results == 3

    @pytest.mark.asyncio
    async def test_relationship_query(self, store, engineers):
        await engineers()
        response = await build_service(store).search(OWNER_ID, "my strongest connections")

        assert response.intent.query_type == "relationship_query"
        assert [r["name"] for r in response.results] == ["Bo", "Ana", "Eve"]

    @pytest.mark.asyncio
    async def test_general_search(self, store, engineers):
        await engineers()
        response = await build_service(store).search(OWNER_ID, "designer")

        assert response.intent.query_type == "general"
        assert [r["name"] for r in response.results] == ["Eve"]

    @pytest.mark.asyncio
    async def test_intro_path_across_owners(self, store, seed):
        ana = await seed("ana@acme.com", name="Ana", strength=60.0)
        cyrus = await seed("cyrus@globex.com", owner_id="user-2", name="Cyrus", knows=False)
        await store.link_persons(ana.id, cyrus.id, KNOWS, strength=40.0)

        response = await build_service(store).search(OWNER_ID, "introduce me to cyrus")

        assert response.intent.query_type == "intro_path"
        path = response.results[0]
        assert path["path_length"] == 2
        assert [n["id"] for n in path["nodes"]] == [OWNER_ID, ana.id, cyrus.id]
        assert path["total_strength"] == 50.0
        assert response.summary.startswith("Introduction path (2 degrees)")

    @pytest.mark.asyncio
    async def test_intro_path_unknown_name(self, store, engineers):
        await engineers()
        response = await build_service(store).search(OWNER_ID, "introduce me to zed")

        assert response.results == []
        assert "broadening" in response.summary

    @pytest.mark.asyncio
    async def test_missing_intro_target_is_rejected(self, store):
        with pytest.raises(IntentValidationError) as exc:
            await build_service(store).search(OWNER_ID, "introduce me")
        assert exc.value.query_type == "intro_path"

    @pytest.mark.asyncio
    async def test_search_is_recorded(self, store, engineers):
        await engineers()
        history = RecordingHistory()
        await build_service(store, history).search(OWNER_ID, "engineer at acme")

        user_id, query, query_type, count, filters = history.rows[0]
        assert (user_id, query, query_type, count) == (OWNER_ID, "engineer at acme", "person_search", 3)
        assert filters["companies"] == ["Acme"]

    @pytest.mark.asyncio
    async def test_quick_search_skips_summary(self, store, engineers):
        await engineers()
        response = await build_service(store).quick_search(OWNER_ID, "engineer at acme", limit=2)

        assert response.summary == "Found 3 results."
        assert len(response.results) == 2


class TestSuggestions:
    @pytest.mark.asyncio
    async def test_built_from_top_companies(self, store, seed):
        ana = await seed("ana@acme.com")
        company = await store.upsert_company("Acme", "acme.com")
        await store.upsert_works_at(ana.id, company.id)

        suggestions = await build_service(store).suggestions(OWNER_ID)

        assert suggestions == [
            "Who do I know at Acme?",
            "My strongest connections",
            "People I haven't talked to recently",
        ]

    @pytest.mark.asyncio
    async def test_fallback_on_store_error(self):
        class BrokenStore(InMemoryGraphStore):
            async def top_companies(self, owner_id, limit=3):
                raise RuntimeError("down")

        assert await build_service(BrokenStore()).suggestions(OWNER_ID) == FALLBACK_SUGGESTIONS
