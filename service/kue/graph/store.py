"""
Graph Store Adapter interface.

Owns the property graph: User, Person, Company nodes and KNOWS, WORKS_AT,
COLLEAGUES_WITH edges. Every operation is scoped by owner where Person data
is involved. Implementations must make upserts on (email, owner_id) atomic.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Optional, TypeVar

from ..errors import UpstreamUnavailable
from ..schemas import Contact
from ..utils.normalize import COMPANY_MATCH_EXACT
from .models import (
    KNOWS,
    DuplicateGroup,
    EnrichmentStatus,
    InteractionSummary,
    NetworkNode,
    NetworkStats,
    Person,
    RawPath,
    RelationshipSignals,
    ScoreUpdate,
    StaleContact,
    UpsertCompanyResult,
    UpsertPersonResult,
    User,
)
from .plan import GraphQuery

T = TypeVar("T")


class GraphStore(ABC):
    """Async graph store. Absence is reported as None / empty list, never raised."""

    def __init__(self, company_match_mode: str = COMPANY_MATCH_EXACT):
        self.company_match_mode = company_match_mode

    async def ensure_schema(self) -> None:
        """Create constraints and indexes. No-op where the store needs none."""

    async def close(self) -> None:
        """Release connections."""

    # ----- identity / upsert -----

    @abstractmethod
    async def ensure_user(self, user_id: str, email: str, name: Optional[str] = None) -> User:
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def list_users(self) -> list[User]:
        ...

    @abstractmethod
    async def upsert_person(self, contact: Contact, owner_id: str) -> UpsertPersonResult:
        """
        Merge on (email, owner_id).

        Null incoming fields never clear stored values; the contact's source
        tag is added to the provenance set.
        """

    @abstractmethod
    async def upsert_company(self, name: str, domain: Optional[str] = None) -> UpsertCompanyResult:
        """Match by domain when given, else by exact name. Only fills missing fields."""

    @abstractmethod
    async def upsert_knows(
        self,
        owner_id: str,
        person_id: str,
        source: str,
        summary: InteractionSummary,
    ) -> None:
        """
        Create or extend the User -> Person KNOWS edge.

        Counters accumulate, first_contact keeps the earliest value and
        last_contact the latest. strength is left untouched (0.0 on create).
        """

    @abstractmethod
    async def upsert_works_at(self, person_id: str, company_id: str) -> None:
        ...

    @abstractmethod
    async def link_persons(
        self,
        src_id: str,
        dst_id: str,
        rel_type: str = KNOWS,
        strength: Optional[float] = None,
    ) -> None:
        """Person -> Person KNOWS or COLLEAGUES_WITH edge, merge-on-write."""

    # ----- lookups -----

    @abstractmethod
    async def get_person(self, person_id: str, owner_id: str) -> Optional[Person]:
        ...

    @abstractmethod
    async def find_person_by_email(self, email: str, owner_id: str) -> Optional[Person]:
        ...

    @abstractmethod
    async def find_person_by_name_company(
        self,
        owner_id: str,
        first_name: str,
        company: str,
        last_name: Optional[str] = None,
    ) -> Optional[Person]:
        """
        Case-insensitive first name (+ last name) + company lookup.

        Company comparison follows company_match_mode.
        """

    @abstractmethod
    async def find_persons_by_name(
        self, owner_id: str, name: str, limit: int = 5, any_owner: bool = False
    ) -> list[Person]:
        """
        Substring, case-insensitive match on name / first / last name.

        any_owner widens the search to other owners' graphs, the owner's own
        contacts first.
        """

    # ----- dedup maintenance -----

    @abstractmethod
    async def find_email_duplicate_groups(self, owner_id: str) -> list[DuplicateGroup]:
        ...

    @abstractmethod
    async def find_name_company_duplicate_groups(
        self, owner_id: str, limit: int = 100
    ) -> list[DuplicateGroup]:
        ...

    @abstractmethod
    async def merge_persons(self, owner_id: str, keep_id: str, remove_ids: list[str]) -> int:
        """
        Collapse remove_ids into keep_id.

        Unions source tags, folds KNOWS counters into the kept edge, moves
        Person links and WORKS_AT, deletes the duplicates. Returns the
        number of nodes removed.
        """

    # ----- scoring -----

    @abstractmethod
    async def list_relationship_signals(
        self, owner_id: str, email: Optional[str] = None
    ) -> list[RelationshipSignals]:
        ...

    @abstractmethod
    async def update_scores(self, owner_id: str, updates: list[ScoreUpdate]) -> None:
        ...

    @abstractmethod
    async def find_stale(
        self,
        owner_id: str,
        cutoff: datetime,
        max_score: float,
        limit: int,
    ) -> list[StaleContact]:
        """Edges with last_contact before cutoff and strength <= max_score, weakest first."""

    # ----- traversal -----

    @abstractmethod
    async def find_second_degree(
        self,
        owner_id: str,
        min_strength: float = 0.0,
        limit: int = 50,
        max_extra_hops: int = 2,
    ) -> list[NetworkNode]:
        ...

    @abstractmethod
    async def shortest_knows_path(
        self, owner_id: str, target_id: str, max_hops: int = 4
    ) -> Optional[RawPath]:
        """
        Unweighted shortest path over KNOWS edges in either direction.

        Each node's degree is its position along the path (owner = 0).
        """

    @abstractmethod
    async def network_stats(self, owner_id: str) -> NetworkStats:
        ...

    @abstractmethod
    async def top_companies(self, owner_id: str, limit: int = 3) -> list[str]:
        """Company names ranked by number of the owner's contacts there."""

    # ----- query plans -----

    @abstractmethod
    async def execute(self, query: GraphQuery) -> list[dict[str, Any]]:
        ...

    # ----- enrichment -----

    @abstractmethod
    async def list_unenriched(
        self, owner_id: str, limit: int = 50, force_refresh: bool = False
    ) -> list[Person]:
        ...

    @abstractmethod
    async def apply_person_enrichment(
        self, owner_id: str, person_id: str, fields: dict[str, Any]
    ) -> list[str]:
        """Fill empty Person fields only, stamp enriched_at. Returns updated field names."""

    @abstractmethod
    async def enrich_company(self, name: str, fields: dict[str, Any]) -> list[str]:
        ...

    @abstractmethod
    async def enrichment_status(self, owner_id: str) -> EnrichmentStatus:
        ...


async def bounded(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """Await a store call, converting a timeout into UpstreamUnavailable."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise UpstreamUnavailable("graph", f"{operation} timed out after {timeout}s") from e
