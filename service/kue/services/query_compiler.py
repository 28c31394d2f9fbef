"""
Query Compiler

Maps a structured SearchIntent to a GraphQuery plan. Pure: no I/O, no
scoring or dedup logic.
"""

from typing import Optional

from ..errors import IntentValidationError
from ..graph.plan import (
    FIELD_COMPANY,
    FIELD_COMPANY_NAME,
    FIELD_INDUSTRY,
    FIELD_LOCATION,
    FIELD_NAME,
    FIELD_TITLE,
    SORT_RECENCY,
    SORT_RELEVANCE,
    SORT_STRENGTH,
    FilterPredicate,
    GraphQuery,
)
from ..schemas import SearchIntent

# relationship_query sort=strength keeps only strong ties
STRONG_TIE_THRESHOLD = 50.0

COMPANY_SEARCH_LIMIT = 20


def _clean(values: Optional[list[str]]) -> list[str]:
    return [v.strip() for v in values or [] if v and v.strip()]


def _predicate(field: str, values: list[str]) -> Optional[FilterPredicate]:
    return FilterPredicate(field=field, values=values) if values else None


class QueryCompiler:
    """SearchIntent -> GraphQuery."""

    def __init__(self, result_limit: int = 50, max_hops: int = 4):
        self.result_limit = result_limit
        self.max_hops = max_hops

    def compile(self, intent: SearchIntent, owner_id: str) -> GraphQuery:
        self.validate(intent)

        builders = {
            "person_search": self._person_search,
            "company_search": self._company_search,
            "relationship_query": self._relationship_query,
            "intro_path": self._intro_path,
            "general": self._general,
        }
        return builders[intent.query_type](intent, owner_id)

    def validate(self, intent: SearchIntent) -> None:
        filters = intent.filters
        query_type = intent.query_type

        if filters.degree is not None and not 1 <= filters.degree <= 3:
            raise IntentValidationError(query_type, f"degree must be 1, 2 or 3 (got {filters.degree})")

        if query_type == "intro_path" and not (filters.name or "").strip():
            raise IntentValidationError(query_type, "a target name is required")

        if query_type == "company_search" and not (
            _clean(filters.companies) or (filters.name or "").strip() or _clean(filters.industries)
        ):
            raise IntentValidationError(query_type, "companies, name or industries is required")

        if query_type == "general" and not intent.natural_language.strip():
            raise IntentValidationError(query_type, "natural language text is required")

    @staticmethod
    def resolve_sort(sort: Optional[str]) -> str:
        """Relevance and unrecognised values fall back to strength for graph sorts."""
        if sort == SORT_RECENCY:
            return SORT_RECENCY
        return SORT_STRENGTH

    def _person_search(self, intent: SearchIntent, owner_id: str) -> GraphQuery:
        filters = intent.filters
        candidates = [
            _predicate(FIELD_NAME, _clean([filters.name] if filters.name else [])),
            _predicate(FIELD_TITLE, _clean([filters.title] if filters.title else [])),
            _predicate(FIELD_TITLE, _clean(filters.roles)),
            _predicate(FIELD_COMPANY, _clean(filters.companies)),
            _predicate(FIELD_LOCATION, _clean(filters.locations)),
            _predicate(FIELD_INDUSTRY, _clean(filters.industries)),
        ]
        return GraphQuery(
            query_type="person_search",
            owner_id=owner_id,
            degree=filters.degree or 1,
            predicates=[p for p in candidates if p is not None],
            sort=self.resolve_sort(filters.sort),
            limit=self.result_limit,
        )

    def _company_search(self, intent: SearchIntent, owner_id: str) -> GraphQuery:
        filters = intent.filters
        names = _clean(filters.companies) or _clean([filters.name] if filters.name else [])
        candidates = [
            _predicate(FIELD_COMPANY_NAME, names),
            _predicate(FIELD_INDUSTRY, _clean(filters.industries)),
        ]
        return GraphQuery(
            query_type="company_search",
            owner_id=owner_id,
            predicates=[p for p in candidates if p is not None],
            limit=min(COMPANY_SEARCH_LIMIT, self.result_limit),
        )

    def _relationship_query(self, intent: SearchIntent, owner_id: str) -> GraphQuery:
        sort = intent.filters.sort
        return GraphQuery(
            query_type="relationship_query",
            owner_id=owner_id,
            sort=self.resolve_sort(sort),
            limit=self.result_limit,
            min_strength_exclusive=STRONG_TIE_THRESHOLD if sort == SORT_STRENGTH else None,
            require_last_contact=sort == SORT_RECENCY,
        )

    def _intro_path(self, intent: SearchIntent, owner_id: str) -> GraphQuery:
        return GraphQuery(
            query_type="intro_path",
            owner_id=owner_id,
            target_name=intent.filters.name.strip(),
            max_hops=self.max_hops,
            limit=1,
        )

    def _general(self, intent: SearchIntent, owner_id: str) -> GraphQuery:
        return GraphQuery(
            query_type="general",
            owner_id=owner_id,
            search_text=intent.natural_language.strip(),
            sort=SORT_RELEVANCE,
            limit=self.result_limit,
        )
