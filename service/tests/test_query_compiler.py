"""
Tests for SearchIntent -> GraphQuery compilation.
"""

import pytest

from kue.errors import IntentValidationError
from kue.graph.plan import (
    FIELD_COMPANY,
    FIELD_COMPANY_NAME,
    FIELD_INDUSTRY,
    FIELD_LOCATION,
    FIELD_TITLE,
    SORT_RECENCY,
    SORT_RELEVANCE,
    SORT_STRENGTH,
)
from kue.schemas import SearchFilters, SearchIntent
from kue.services.query_compiler import STRONG_TIE_THRESHOLD, QueryCompiler

OWNER_ID = "user-1"


def intent(query_type, natural_language="query", **filters) -> SearchIntent:
    return SearchIntent(
        query_type=query_type,
        filters=SearchFilters(**filters),
        natural_language=natural_language,
    )


@pytest.fixture
def compiler():
    return QueryCompiler(result_limit=50, max_hops=4)


class TestPersonSearch:
    """Tests for person_search plans."""

    def test_roles_and_companies(self, compiler):
        query = compiler.compile(intent("person_search", roles=["engineer"], companies=["Google"]), OWNER_ID)

        assert query.query_type == "person_search"
        assert query.owner_id == OWNER_ID
        assert query.degree == 1
        assert query.sort == SORT_STRENGTH
        assert query.limit == 50
        assert [(p.field, p.values) for p in query.predicates] == [
            (FIELD_TITLE, ["engineer"]),
            (FIELD_COMPANY, ["Google"]),
        ]

    def test_title_and_roles_are_separate_predicates(self, compiler):
        query = compiler.compile(intent("person_search", title="VP", roles=["sales"]), OWNER_ID)
        assert [(p.field, p.values) for p in query.predicates] == [
            (FIELD_TITLE, ["VP"]),
            (FIELD_TITLE, ["sales"]),
        ]

    def test_locations_and_industries(self, compiler):
        query = compiler.compile(
            intent("person_search", locations=["New York"], industries=["fintech"]), OWNER_ID
        )
        fields = [p.field for p in query.predicates]
        assert fields == [FIELD_LOCATION, FIELD_INDUSTRY]

    def test_blank_values_are_dropped(self, compiler):
        query = compiler.compile(intent("person_search", roles=["  ", "cto"], companies=[""]), OWNER_ID)
        assert [(p.field, p.values) for p in query.predicates] == [(FIELD_TITLE, ["cto"])]

    def test_no_filters_lists_direct_connections(self, compiler):
        query = compiler.compile(intent("person_search"), OWNER_ID)
        assert query.predicates == []

    def test_second_degree(self, compiler):
        query = compiler.compile(intent("person_search", companies=["Meta"], degree=2), OWNER_ID)
        assert query.degree == 2
        assert query.extra_hops == 1

    def test_recency_sort(self, compiler):
        query = compiler.compile(intent("person_search", sort="recency"), OWNER_ID)
        assert query.sort == SORT_RECENCY

    @pytest.mark.parametrize("degree", [0, 4, -1])
    def test_degree_out_of_range(self, compiler, degree):
        with pytest.raises(IntentValidationError):
            compiler.compile(intent("person_search", degree=degree), OWNER_ID)


class TestCompanySearch:
    """Tests for company_search plans."""

    def test_companies(self, compiler):
        query = compiler.compile(intent("company_search", companies=["Stripe"]), OWNER_ID)
        assert [(p.field, p.values) for p in query.predicates] == [(FIELD_COMPANY_NAME, ["Stripe"])]
        assert query.limit == 20

    def test_name_stands_in_for_company(self, compiler):
        query = compiler.compile(intent("company_search", name="Stripe"), OWNER_ID)
        assert query.predicates[0].values == ["Stripe"]

    def test_industries_only(self, compiler):
        query = compiler.compile(intent("company_search", industries=["fintech"]), OWNER_ID)
        assert [p.field for p in query.predicates] == [FIELD_INDUSTRY]

    def test_requires_a_company_filter(self, compiler):
        with pytest.raises(IntentValidationError) as exc:
            compiler.compile(intent("company_search", roles=["engineer"]), OWNER_ID)
        assert exc.value.query_type == "company_search"

    def test_limit_never_exceeds_result_limit(self):
        query = QueryCompiler(result_limit=5).compile(intent("company_search", companies=["A"]), OWNER_ID)
        assert query.limit == 5


class TestRelationshipQuery:
    """Tests for relationship_query plans."""

    def test_strength_keeps_strong_ties(self, compiler):
        query = compiler.compile(intent("relationship_query", sort="strength"), OWNER_ID)
        assert query.sort == SORT_STRENGTH
        assert query.min_strength_exclusive == STRONG_TIE_THRESHOLD
        assert query.require_last_contact is False

    def test_recency_requires_last_contact(self, compiler):
        query = compiler.compile(intent("relationship_query", sort="recency"), OWNER_ID)
        assert query.sort == SORT_RECENCY
        assert query.min_strength_exclusive is None
        assert query.require_last_contact is True

    def test_no_sort(self, compiler):
        query = compiler.compile(intent("relationship_query"), OWNER_ID)
        assert query.sort == SORT_STRENGTH
        assert query.min_strength_exclusive is None


class TestIntroPath:
    """Tests for intro_path plans."""

    def test_target_name(self, compiler):
        query = compiler.compile(intent("intro_path", name="  Sarah Chen "), OWNER_ID)
        assert query.target_name == "Sarah Chen"
        assert query.max_hops == 4
        assert query.limit == 1

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_requires_name(self, compiler, name):
        with pytest.raises(IntentValidationError):
            compiler.compile(intent("intro_path", name=name), OWNER_ID)


class TestGeneral:
    """Tests for general full-text plans."""

    def test_search_text(self, compiler):
        query = compiler.compile(intent("general", natural_language=" ana lopez "), OWNER_ID)
        assert query.search_text == "ana lopez"
        assert query.sort == SORT_RELEVANCE

    def test_blank_text_is_rejected(self, compiler):
        with pytest.raises(IntentValidationError):
            compiler.compile(intent("general", natural_language="   "), OWNER_ID)


class TestResolveSort:
    def test_relevance_falls_back_to_strength(self):
        assert QueryCompiler.resolve_sort("relevance") == SORT_STRENGTH
        assert QueryCompiler.resolve_sort(None) == SORT_STRENGTH
        assert QueryCompiler.resolve_sort("nonsense") == SORT_STRENGTH
        assert QueryCompiler.resolve_sort("recency") == SORT_RECENCY
