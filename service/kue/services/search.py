"""
Search Service

Natural-language search over one owner's network:
parse -> compile -> execute -> paginate -> summarize.
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from ..graph.store import GraphStore, bounded
from ..schemas import SearchIntent
from .jobs import SearchHistory
from .query_compiler import QueryCompiler
from .query_parser import LLMQueryParser
from .result_formatter import ResultFormatter, empty_summary
from .traversal import TraversalService

logger = logging.getLogger("kue.search")

SUGGESTION_COMPANIES = 3
FALLBACK_SUGGESTIONS = [
    "My strongest connections",
    "People I haven't talked to recently",
    "Engineers in my network",
]


@dataclass
class SearchResponse:
    query: str
    intent: SearchIntent
    results: list[dict[str, Any]]
    total_results: int
    summary: str
    timings: dict[str, int] = field(default_factory=dict)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def paginate(results: list[dict[str, Any]], page: int, limit: int) -> list[dict[str, Any]]:
    page = max(page, 1)
    start = (page - 1) * limit
    return results[start:start + limit]


class SearchService:
    def __init__(
        self,
        store: GraphStore,
        parser: LLMQueryParser,
        compiler: QueryCompiler,
        traversal: TraversalService,
        formatter: ResultFormatter,
        timeout: float = 10.0,
        history: Optional[SearchHistory] = None,
    ):
        self.store = store
        self.parser = parser
        self.compiler = compiler
        self.traversal = traversal
        self.formatter = formatter
        self.timeout = timeout
        self.history = history

    async def search(
        self,
        owner_id: str,
        query: str,
        format: bool = True,
        page: int = 1,
        limit: int = 20,
    ) -> SearchResponse:
        """
        Run a natural-language search.

        Raises IntentValidationError when the parsed intent is unusable and
        UpstreamUnavailable when the graph store is down. Zero results is a
        normal response with a "try broadening" summary.
        """
        total_start = time.monotonic()

        parse_start = time.monotonic()
        intent = await self.parser.parse(query)
        parse_ms = _elapsed_ms(parse_start)

        graph_query = self.compiler.compile(intent, owner_id)

        query_start = time.monotonic()
        if graph_query.query_type == "intro_path":
            all_results = await self._intro_path(owner_id, graph_query.target_name)
        else:
            all_results = await bounded(
                self.store.execute(graph_query), self.timeout, f"search_{graph_query.query_type}"
            )
        query_ms = _elapsed_ms(query_start)

        results = paginate(all_results, page, limit)

        format_start = time.monotonic()
        if not all_results:
            summary = empty_summary(query)
        elif format:
            summary = await self.formatter.format(query, all_results, graph_query.query_type)
        else:
            summary = f"Found {len(all_results)} result{'' if len(all_results) == 1 else 's'}."
        format_ms = _elapsed_ms(format_start)

        timings = {
            "parse_ms": parse_ms,
            "query_ms": query_ms,
            "format_ms": format_ms,
            "total_ms": _elapsed_ms(total_start),
        }
        logger.info(
            f"[SEARCH] Search executed owner={owner_id} type={intent.query_type} "
            f"results={len(all_results)} total_ms={timings['total_ms']}"
        )

        if self.history is not None:
            self.history.record(
                owner_id, query, intent.query_type, len(all_results),
                intent.filters.model_dump(exclude_none=True),
            )

        return SearchResponse(
            query=query,
            intent=intent,
            results=results,
            total_results=len(all_results),
            summary=summary,
            timings=timings,
        )

    async def quick_search(self, owner_id: str, query: str, limit: int = 10) -> SearchResponse:
        """Search without the summarization step."""
        return await self.search(owner_id, query, format=False, limit=limit)

    async def _intro_path(self, owner_id: str, target_name: str) -> list[dict[str, Any]]:
        # First name match wins; the owner's own contacts are ordered first
        matches = await bounded(
            self.store.find_persons_by_name(owner_id, target_name, limit=1, any_owner=True),
            self.timeout, "find_persons_by_name",
        )
        if not matches:
            logger.info(f"[SEARCH] No person named '{target_name}' for intro path")
            return []

        path = await self.traversal.find_intro_path(owner_id, matches[0].id)
        if path is None:
            return []
        return [{
            "nodes": [asdict(node) for node in path.nodes],
            "total_strength": path.total_strength,
            "path_length": path.hops,
        }]

    async def suggestions(self, owner_id: str) -> list[str]:
        """Prompts built from the owner's most-connected companies."""
        try:
            companies = await bounded(
                self.store.top_companies(owner_id, limit=SUGGESTION_COMPANIES), self.timeout, "top_companies"
            )
        except Exception as e:
            logger.error(f"[SEARCH] Failed to build suggestions for owner={owner_id}: {e}")
            return list(FALLBACK_SUGGESTIONS)

        suggestions = [f"Who do I know at {company}?" for company in companies[:SUGGESTION_COMPANIES]]
        suggestions.append("My strongest connections")
        suggestions.append("People I haven't talked to recently")
        return suggestions
