"""
Graph records.

Plain dataclasses returned by every GraphStore implementation. Persisted
property names in Neo4j are camelCase; these records are snake_case.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional


# Edge types
KNOWS = "KNOWS"
COLLEAGUES_WITH = "COLLEAGUES_WITH"
WORKS_AT = "WORKS_AT"

PERSON_LINK_TYPES = (KNOWS, COLLEAGUES_WITH)

# Editable Person profile fields (everything but identity and bookkeeping)
PERSON_PROFILE_FIELDS = (
    "name", "first_name", "last_name", "phone", "title",
    "company", "location", "linkedin_url", "bio",
)

COMPANY_PROFILE_FIELDS = ("domain", "industry", "size", "location")


@dataclass
class User:
    id: str
    email: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Person:
    """A contact inside one owner's graph. (email, owner_id) is unique."""
    id: str
    owner_id: str
    email: str
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    bio: Optional[str] = None
    source: list[str] = field(default_factory=list)
    enriched_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Company:
    id: str
    name: str
    domain: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class KnowsEdge:
    """User -> Person relationship. strength is written by scoring only."""
    user_id: str
    person_id: str
    source: Optional[str] = None
    strength: float = 0.0
    interaction_count: int = 0
    emails_sent: int = 0
    emails_received: int = 0
    meeting_count: int = 0
    first_contact: Optional[datetime] = None
    last_contact: Optional[datetime] = None
    score_breakdown: Optional[dict[str, float]] = None
    scored_at: Optional[datetime] = None


@dataclass
class InteractionSummary:
    """Aggregated observation applied to a KNOWS edge in one upsert."""
    interaction_count: int = 1
    emails_sent: int = 0
    emails_received: int = 0
    meeting_count: int = 0
    first_contact: Optional[datetime] = None
    last_contact: Optional[datetime] = None


@dataclass
class UpsertPersonResult:
    id: str
    email: str
    is_new: bool


@dataclass
class UpsertCompanyResult:
    id: str
    name: str
    domain: Optional[str]
    is_new: bool


@dataclass
class RelationshipSignals:
    """Raw scoring inputs read off one KNOWS edge."""
    person_id: str
    email: str
    sources: list[str] = field(default_factory=list)
    interaction_count: int = 0
    emails_sent: int = 0
    emails_received: int = 0
    meeting_count: int = 0
    first_contact: Optional[datetime] = None
    last_contact: Optional[datetime] = None


@dataclass
class ScoreUpdate:
    person_id: str
    score: float
    breakdown: dict[str, float]


@dataclass
class StaleContact:
    person_id: str
    email: str
    name: Optional[str]
    days_since_contact: int
    score: float


@dataclass
class NetworkNode:
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    degree: int = 1
    strength: float = 0.0
    # Direct connection that mediates a second-degree result
    via: Optional[dict[str, Any]] = None
    # 'user' for the owner node on a path, 'person' otherwise
    kind: str = "person"


@dataclass
class RawPath:
    """Shortest path as found by the store, before strength aggregation."""
    nodes: list[NetworkNode]
    # One entry per hop; None when the edge carries no strength
    edge_strengths: list[Optional[float]]


@dataclass
class NetworkStats:
    total_contacts: int = 0
    companies: int = 0
    sources: dict[str, int] = field(default_factory=dict)
    avg_strength: float = 0.0


@dataclass
class DuplicateGroup:
    """Person ids sharing an identity key, oldest first."""
    key: str
    person_ids: list[str]
    names: list[Optional[str]] = field(default_factory=list)


@dataclass
class EnrichmentStatus:
    total: int = 0
    enriched: int = 0

    @property
    def pending(self) -> int:
        return self.total - self.enriched

    @property
    def percent_complete(self) -> int:
        if self.total == 0:
            return 0
        return round(self.enriched / self.total * 100)
