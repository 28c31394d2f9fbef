"""
Boundary schemas.

Contact / Interaction come from the ingestion connectors (mail, contacts
directory, calendar, CSV). SearchIntent comes from the query parser.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


QueryType = Literal[
    "person_search", "company_search", "relationship_query", "intro_path", "general"
]
SortKey = Literal["strength", "recency", "relevance"]


class _CamelModel(BaseModel):
    # Connectors send camelCase JSON; Python code uses snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Contact(_CamelModel):
    """Normalized contact record produced by every ingestion source."""
    email: str
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    title: Optional[str] = None
    linkedin_url: Optional[str] = None
    source: str


class Interaction(_CamelModel):
    """A single observed touchpoint with a contact."""
    email: str
    kind: Literal["email", "meeting", "contact"]
    direction: Optional[Literal["sent", "received"]] = None
    occurred_at: datetime

    @field_validator("occurred_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are read as UTC so they compare with aware ones
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class SearchFilters(_CamelModel):
    roles: Optional[list[str]] = None
    companies: Optional[list[str]] = None
    locations: Optional[list[str]] = None
    industries: Optional[list[str]] = None
    skills: Optional[list[str]] = None
    name: Optional[str] = None
    title: Optional[str] = None
    degree: Optional[int] = None
    sort: Optional[str] = None


class SearchIntent(_CamelModel):
    query_type: QueryType = "general"
    filters: SearchFilters = Field(default_factory=SearchFilters)
    natural_language: str = ""
