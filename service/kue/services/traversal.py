"""
Graph Traversal Service

Second-degree discovery, introduction paths and network stats.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..graph.models import NetworkNode, NetworkStats
from ..graph.store import GraphStore, bounded

logger = logging.getLogger("kue.traversal")


# How path edges without a strength value enter the mean
STRENGTH_ZERO_FILL = "zero_fill"
STRENGTH_EXCLUDE = "exclude"


@dataclass
class NetworkPath:
    """Ordered user -> intermediaries -> target path."""
    nodes: list[NetworkNode]
    total_strength: float

    @property
    def from_node(self) -> NetworkNode:
        return self.nodes[0]

    @property
    def to_node(self) -> NetworkNode:
        return self.nodes[-1]

    @property
    def via(self) -> list[NetworkNode]:
        return self.nodes[1:-1]

    @property
    def hops(self) -> int:
        return len(self.nodes) - 1


def path_strength(strengths: list[Optional[float]], policy: str = STRENGTH_ZERO_FILL) -> float:
    """Arithmetic mean of edge strengths along a path."""
    if policy == STRENGTH_EXCLUDE:
        values = [s for s in strengths if s is not None]
    else:
        values = [s or 0.0 for s in strengths]
    if not values:
        return 0.0
    return sum(values) / len(values)


class TraversalService:
    """Read-only traversals over one owner's graph."""

    def __init__(
        self,
        store: GraphStore,
        timeout: float = 10.0,
        max_hops: int = 4,
        path_strength_policy: str = STRENGTH_ZERO_FILL,
    ):
        self.store = store
        self.timeout = timeout
        self.max_hops = max_hops
        self.path_strength_policy = path_strength_policy

    async def find_second_degree(
        self,
        owner_id: str,
        limit: int = 50,
        min_strength: float = 0.0,
    ) -> list[NetworkNode]:
        """
        Friends-of-friends not owned by and not directly known to the owner.

        Each node carries the mediating direct connection in `via`; ordered
        by that connection's strength.
        """
        nodes = await bounded(
            self.store.find_second_degree(owner_id, min_strength=min_strength, limit=limit),
            self.timeout, "find_second_degree",
        )
        logger.info(f"[TRAVERSE] second_degree owner={owner_id} found={len(nodes)}")
        return nodes

    async def find_intro_path(self, owner_id: str, target_person_id: str) -> Optional[NetworkPath]:
        """Shortest KNOWS path within max_hops, or None."""
        if target_person_id == owner_id:
            user = await bounded(self.store.get_user(owner_id), self.timeout, "get_user")
            return NetworkPath(
                nodes=[NetworkNode(
                    id=owner_id,
                    email=user.email if user else None,
                    name=user.name if user else None,
                    degree=0,
                    kind="user",
                )],
                total_strength=0.0,
            )

        raw = await bounded(
            self.store.shortest_knows_path(owner_id, target_person_id, max_hops=self.max_hops),
            self.timeout, "shortest_knows_path",
        )
        if raw is None or len(raw.nodes) < 2:
            logger.info(f"[TRAVERSE] No intro path owner={owner_id} target={target_person_id}")
            return None

        path = NetworkPath(
            nodes=raw.nodes,
            total_strength=path_strength(raw.edge_strengths, self.path_strength_policy),
        )
        logger.info(
            f"[TRAVERSE] intro_path owner={owner_id} target={target_person_id} "
            f"hops={path.hops} strength={path.total_strength:.2f}"
        )
        return path

    async def get_stats(self, owner_id: str) -> NetworkStats:
        return await bounded(self.store.network_stats(owner_id), self.timeout, "network_stats")
