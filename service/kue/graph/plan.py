"""
Graph query plans.

A GraphQuery is a store-independent description of a search: query type,
typed filter predicates, traversal depth and sort key. The query compiler
builds plans; each GraphStore lowers them (Cypher for Neo4j, a scan for the
in-memory store).
"""

from dataclasses import dataclass, field
from typing import Optional


SORT_STRENGTH = "strength"
SORT_RECENCY = "recency"
SORT_RELEVANCE = "relevance"

# Filter fields the stores know how to evaluate
FIELD_NAME = "name"            # name, first_name or last_name
FIELD_TITLE = "title"
FIELD_COMPANY = "company"      # person.company or linked Company.name
FIELD_LOCATION = "location"
FIELD_INDUSTRY = "industry"    # linked Company.industry
FIELD_COMPANY_NAME = "company_name"  # company_search: Company.name


@dataclass
class FilterPredicate:
    """Case-insensitive substring match; values are OR-ed."""
    field: str
    values: list[str]


@dataclass
class GraphQuery:
    query_type: str
    owner_id: str
    degree: int = 1
    predicates: list[FilterPredicate] = field(default_factory=list)
    sort: str = SORT_STRENGTH
    limit: int = 50
    # relationship_query filters
    min_strength_exclusive: Optional[float] = None
    require_last_contact: bool = False
    # general
    search_text: Optional[str] = None
    # intro_path
    target_name: Optional[str] = None
    max_hops: int = 4

    @property
    def extra_hops(self) -> int:
        return max(0, self.degree - 1)
