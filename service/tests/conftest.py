"""
Shared fixtures: an in-memory graph with a small helper for seeding contacts.
"""

from datetime import datetime, timedelta, timezone

import pytest

from kue.graph.memory_store import InMemoryGraphStore
from kue.graph.models import InteractionSummary, Person
from kue.schemas import Contact

OWNER_ID = "user-1"


def make_contact(email: str, source: str = "gmail", **fields) -> Contact:
    return Contact(email=email, source=source, **fields)


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc)


@pytest.fixture
def store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def seed(store, now):
    """
    Returns an async helper that creates a Person, the owner's User node and
    a KNOWS edge with the given strength and recency.
    """

    async def _seed(
        email: str,
        owner_id: str = OWNER_ID,
        strength: float = 0.0,
        days_since_contact: int = 1,
        days_known: int = 30,
        interactions: int = 1,
        source: str = "gmail",
        knows: bool = True,
        **fields,
    ) -> Person:
        await store.ensure_user(owner_id, f"{owner_id}@kue.dev")
        result = await store.upsert_person(make_contact(email, source=source, **fields), owner_id)
        if knows:
            await store.upsert_knows(owner_id, result.id, source, InteractionSummary(
                interaction_count=interactions,
                first_contact=now - timedelta(days=days_known),
                last_contact=now - timedelta(days=days_since_contact),
            ))
            store.knows[(owner_id, result.id)].strength = strength
        return store.persons[result.id]

    return _seed

