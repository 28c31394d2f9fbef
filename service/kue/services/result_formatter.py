"""
Result Formatter

Summarizes search results with Anthropic, falling back to a deterministic
text summary when the model is unconfigured, slow or failing.
"""

import asyncio
import json
import logging
from typing import Any, Optional

from anthropic import AsyncAnthropic

from ..agents.prompts import RESULT_FORMATTER_PROMPT

logger = logging.getLogger("kue.search")

LLM_RESULT_LIMIT = 10
SUMMARY_RESULT_LIMIT = 5


def empty_summary(query: str) -> str:
    return f'No results found for "{query}". Try broadening your search or using different keywords.'


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def format_intro_path(result: dict[str, Any]) -> str:
    nodes = result.get("nodes") or []
    if len(nodes) < 2:
        return "No clear introduction path found to this person."

    parts = []
    for node in nodes:
        label = node.get("name") or node.get("email") or "Unknown"
        if node.get("title"):
            label += f" ({node['title']})"
        parts.append(label)

    hops = len(nodes) - 1
    return f"Introduction path ({hops} {_plural(hops, 'degree', 'degrees')}): " + " → ".join(parts)


def format_companies(query: str, results: list[dict[str, Any]]) -> str:
    lines = [f'Found {len(results)} {_plural(len(results), "company", "companies")} matching "{query}".']
    for result in results[:SUMMARY_RESULT_LIMIT]:
        count = len(result.get("contacts") or [])
        lines.append(f"  - {result.get('name') or 'Unknown'}: {count} {_plural(count, 'contact', 'contacts')}")
    return "\n".join(lines)


def format_people(query: str, results: list[dict[str, Any]]) -> str:
    lines = [f'Found {len(results)} {_plural(len(results), "result", "results")} for "{query}".', "Top matches:"]
    for result in results[:SUMMARY_RESULT_LIMIT]:
        line = f"  - {result.get('name') or result.get('email') or 'Unknown'}"
        if result.get("title"):
            line += f", {result['title']}"
        if result.get("company"):
            line += f" at {result['company']}"
        if isinstance(result.get("strength"), (int, float)):
            line += f" (strength: {round(result['strength'])})"
        lines.append(line)
    return "\n".join(lines)


def fallback_summary(query: str, results: list[dict[str, Any]], query_type: str) -> str:
    """Deterministic summary used when no model is available."""
    if not results:
        return empty_summary(query)
    if query_type == "intro_path":
        return format_intro_path(results[0])
    if query_type == "company_search":
        return format_companies(query, results)
    return format_people(query, results)


class ResultFormatter:
    """Anthropic summary with deterministic fallback."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-20250514",
        timeout: float = 8.0,
        client: Optional[AsyncAnthropic] = None,
    ):
        self.model = model
        self.timeout = timeout
        self.client = client or (AsyncAnthropic(api_key=api_key) if api_key else None)

    async def format(self, query: str, results: list[dict[str, Any]], query_type: str) -> str:
        if not results:
            return empty_summary(query)
        if self.client is None:
            return fallback_summary(query, results, query_type)

        payload = json.dumps(results[:LLM_RESULT_LIMIT], indent=2, default=str)
        try:
            response = await asyncio.wait_for(
                self.client.messages.create(
                    model=self.model,
                    max_tokens=512,
                    temperature=0.3,
                    system=RESULT_FORMATTER_PROMPT,
                    messages=[{
                        "role": "user",
                        "content": (
                            f'User query: "{query}"\nQuery type: {query_type}\n'
                            f"Total results: {len(results)}\n\nTop results:\n{payload}"
                        ),
                    }],
                ),
                self.timeout,
            )
            text = "".join(
                block.text for block in response.content if getattr(block, "type", None) == "text"
            ).strip()
        except asyncio.TimeoutError:
            logger.warning(f"[SEARCH] Formatter timed out after {self.timeout}s, using text summary")
            return fallback_summary(query, results, query_type)
        except Exception as e:
            logger.error(f"[SEARCH] Formatter failed, using text summary: {e}")
            return fallback_summary(query, results, query_type)

        return text or fallback_summary(query, results, query_type)
