"""
Tests for second-degree discovery, introduction paths and network stats.
"""

import asyncio

import pytest

from kue.errors import UpstreamUnavailable
from kue.graph.memory_store import InMemoryGraphStore
from kue.graph.models import COLLEAGUES_WITH, KNOWS, InteractionSummary
from kue.services.traversal import (
    STRENGTH_EXCLUDE,
    STRENGTH_ZERO_FILL,
    TraversalService,
    path_strength,
)

OWNER_ID = "user-1"
OTHER_ID = "user-2"


@pytest.fixture
def build_network(store, seed):
    """
    user-1 knows Ana (40) and Bo (80), and user-2's Fay node directly.
    Ana -> Cy, Ana -> Di, Bo -> Di (colleagues), Bo -> Fay, Ana -> Eve (user-1's).
    Cy -> H1 -> H2 -> H3 is a long chain; Gus is isolated.
    """

    async def _build():
        people = {
            "ana": await seed("ana@acme.com", name="Ana", strength=40.0),
            "bo": await seed("bo@initech.com", name="Bo", strength=80.0),
            "eve": await seed("eve@acme.com", name="Eve", knows=False),
        }
        for key in ("cy", "di", "fay", "h1", "h2", "h3", "gus"):
            people[key] = await seed(f"{key}@globex.com", owner_id=OTHER_ID, name=key.title(), knows=False)

        await store.upsert_knows(OWNER_ID, people["fay"].id, "gmail", InteractionSummary())

        links = [
            ("ana", "cy", KNOWS),
            ("ana", "di", KNOWS),
            ("bo", "di", COLLEAGUES_WITH),
            ("bo", "fay", KNOWS),
            ("ana", "eve", KNOWS),
            ("cy", "h1", KNOWS),
            ("h1", "h2", KNOWS),
            ("h2", "h3", KNOWS),
        ]
        for src, dst, rel_type in links:
            await store.link_persons(people[src].id, people[dst].id, rel_type)
        return people

    return _build


class TestPathStrength:
    """Mean edge strength with an explicit policy for missing values."""

    def test_zero_fill(self):
        assert path_strength([40.0, None], STRENGTH_ZERO_FILL) == 20.0

    def test_exclude(self):
        assert path_strength([40.0, None], STRENGTH_EXCLUDE) == 40.0

    def test_all_missing_excluded_is_zero(self):
        assert path_strength([None, None], STRENGTH_EXCLUDE) == 0.0

    def test_empty(self):
        assert path_strength([]) == 0.0


class TestSecondDegree:
    """Friends-of-friends discovery."""

    @pytest.mark.asyncio
    async def test_finds_friends_of_friends(self, store, build_network):
        people = await build_network()
        nodes = await TraversalService(store).find_second_degree(OWNER_ID)

        ids = {n.id for n in nodes}
        assert people["cy"].id in ids
        assert people["di"].id in ids
        assert all(n.degree == 2 for n in nodes)

    @pytest.mark.asyncio
    async def test_never_returns_owned_or_known_people(self, store, build_network):
        people = await build_network()
        nodes = await TraversalService(store).find_second_degree(OWNER_ID)

        ids = {n.id for n in nodes}
        assert people["eve"].id not in ids
        assert people["fay"].id not in ids
        assert all(store.persons[i].owner_id != OWNER_ID for i in ids)
        assert all((OWNER_ID, i) not in store.knows for i in ids)

    @pytest.mark.asyncio
    async def test_min_strength_excludes_weak_mediators(self, store, build_network):
        """Cy is reachable only through Ana (strength 40)."""
        people = await build_network()
        nodes = await TraversalService(store).find_second_degree(OWNER_ID, min_strength=50)

        ids = {n.id for n in nodes}
        assert people["cy"].id not in ids
        assert people["di"].id in ids

    @pytest.mark.asyncio
    async def test_keeps_strongest_mediator(self, store, build_network):
        people = await build_network()
        nodes = await TraversalService(store).find_second_degree(OWNER_ID)

        di = next(n for n in nodes if n.id == people["di"].id)
        assert di.via["id"] == people["bo"].id
        assert di.strength == 80.0

    @pytest.mark.asyncio
    async def test_ordered_by_mediator_strength(self, store, build_network):
        await build_network()
        nodes = await TraversalService(store).find_second_degree(OWNER_ID)
        strengths = [n.strength for n in nodes]
        assert strengths == sorted(strengths, reverse=True)

    @pytest.mark.asyncio
    async def test_limit(self, store, build_network):
        await build_network()
        nodes = await TraversalService(store).find_second_degree(OWNER_ID, limit=1)
        assert len(nodes) == 1

    @pytest.mark.asyncio
    async def test_empty_network(self, store):
        assert await TraversalService(store).find_second_degree(OWNER_ID) == []


class TestIntroPath:
    """Shortest KNOWS path within the hop bound."""

    @pytest.mark.asyncio
    async def test_two_hop_path(self, store, build_network):
        people = await build_network()
        path = await TraversalService(store).find_intro_path(OWNER_ID, people["cy"].id)

        assert path is not None
        assert path.hops == 2
        assert path.from_node.kind == "user"
        assert path.from_node.id == OWNER_ID
        assert [n.id for n in path.via] == [people["ana"].id]
        assert path.to_node.id == people["cy"].id
        # KNOWS 40 then an unscored person link
        assert path.total_strength == 20.0

    @pytest.mark.asyncio
    async def test_exclude_policy(self, store, build_network):
        people = await build_network()
        service = TraversalService(store, path_strength_policy=STRENGTH_EXCLUDE)
        path = await service.find_intro_path(OWNER_ID, people["cy"].id)
        assert path.total_strength == 40.0

    @pytest.mark.asyncio
    async def test_colleague_links_are_not_traversed(self, store, build_network):
        """Di is reachable through Ana's KNOWS link, not Bo's COLLEAGUES_WITH."""
        people = await build_network()
        path = await TraversalService(store).find_intro_path(OWNER_ID, people["di"].id)
        assert [n.id for n in path.via] == [people["ana"].id]

    @pytest.mark.asyncio
    async def test_direct_connection(self, store, build_network):
        people = await build_network()
        path = await TraversalService(store).find_intro_path(OWNER_ID, people["bo"].id)
        assert path.hops == 1
        assert path.total_strength == 80.0

    @pytest.mark.asyncio
    async def test_hop_bound(self, store, build_network):
        """H2 is 4 hops away, H3 is 5."""
        people = await build_network()
        service = TraversalService(store, max_hops=4)

        assert (await service.find_intro_path(OWNER_ID, people["h2"].id)).hops == 4
        assert await service.find_intro_path(OWNER_ID, people["h3"].id) is None

    @pytest.mark.asyncio
    async def test_unreachable_target_returns_none(self, store, build_network):
        people = await build_network()
        assert await TraversalService(store).find_intro_path(OWNER_ID, people["gus"].id) is None

    @pytest.mark.asyncio
    async def test_unknown_target_returns_none(self, store, build_network):
        await build_network()
        assert await TraversalService(store).find_intro_path(OWNER_ID, "missing") is None

    @pytest.mark.asyncio
    async def test_path_to_self_is_trivial(self, store, build_network):
        await build_network()
        path = await TraversalService(store).find_intro_path(OWNER_ID, OWNER_ID)

        assert path.hops == 0
        assert path.total_strength == 0.0
        assert path.from_node is path.to_node
        assert path.from_node.email == "user-1@kue.dev"

    @pytest.mark.asyncio
    async def test_degrees_follow_path_position(self, store, build_network):
        people = await build_network()
        path = await TraversalService(store).find_intro_path(OWNER_ID, people["h1"].id)

        assert [n.degree for n in path.nodes] == [0, 1, 2, 3]
        assert [n.kind for n in path.nodes] == ["user", "person", "person", "person"]

    @pytest.mark.asyncio
    async def test_reverse_link_strength_is_used(self, store, build_network):
        """A scored Cy -> Ana link counts for the unscored Ana -> Cy hop."""
        people = await build_network()
        await store.link_persons(people["cy"].id, people["ana"].id, KNOWS, strength=60.0)

        path = await TraversalService(store).find_intro_path(OWNER_ID, people["cy"].id)

        assert path.hops == 2
        assert path.total_strength == 50.0

    @pytest.mark.asyncio
    async def test_store_timeout_is_upstream_unavailable(self):
        class SlowStore(InMemoryGraphStore):
            async def shortest_knows_path(self, owner_id, target_id, max_hops=4):
                await asyncio.sleep(1)

        service = TraversalService(SlowStore(), timeout=0.01)
        with pytest.raises(UpstreamUnavailable):
            await service.find_intro_path(OWNER_ID, "p-1")


class TestStats:
    @pytest.mark.asyncio
    async def test_network_stats(self, store, build_network):
        await build_network()
        stats = await TraversalService(store).get_stats(OWNER_ID)

        # Ana and Bo; the Fay edge points at another owner's node
        assert stats.total_contacts == 2
        assert stats.avg_strength == 60.0
        assert stats.sources == {"gmail": 2}

    @pytest.mark.asyncio
    async def test_empty_stats(self, store):
        stats = await TraversalService(store).get_stats(OWNER_ID)
        assert stats.total_contacts == 0
        assert stats.avg_strength == 0.0
