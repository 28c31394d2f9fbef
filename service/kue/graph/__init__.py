from .memory_store import InMemoryGraphStore
from .plan import FilterPredicate, GraphQuery
from .store import GraphStore


def build_graph_store(settings) -> GraphStore:
    """Neo4j when a URI is configured, otherwise the in-memory store."""
    if settings.neo4j_uri:
        from .neo4j_store import Neo4jGraphStore

        return Neo4jGraphStore(
            uri=settings.neo4j_uri,
            username=settings.neo4j_username,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
            company_match_mode=settings.company_match_mode,
        )
    return InMemoryGraphStore(company_match_mode=settings.company_match_mode)


__all__ = [
    "GraphStore",
    "InMemoryGraphStore",
    "GraphQuery",
    "FilterPredicate",
    "build_graph_store",
]
