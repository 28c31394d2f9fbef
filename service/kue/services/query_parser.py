"""
Query Parser

Two tiers: the OpenAI parser turns free text into a SearchIntent; the
rule-based parser is the deterministic fallback used whenever the model is
unconfigured, slow, failing or returns unusable JSON.
"""

import asyncio
import json
import logging
import re
from typing import Optional

from openai import AsyncOpenAI
from pydantic import ValidationError

from ..agents.prompts import QUERY_PARSER_PROMPT
from ..schemas import SearchFilters, SearchIntent

logger = logging.getLogger("kue.search")


INTRO_KEYWORDS = ("introduce", "intro", "how do i reach", "path to")
STRENGTH_KEYWORDS = ("strongest", "closest")
RECENCY_KEYWORDS = ("recent", "haven't talked", "stale")
COMPANY_KEYWORDS = ("who do i know at", "contacts at", "people at")
DEGREE_KEYWORDS = ("second degree", "2nd degree", "friend of friend", "mutual")

_INTRO_TARGET = re.compile(r'(?:introduce\s+(?:me\s+)?to|reach|path\s+to)\s+(.+)')
_COMPANY_TARGET = re.compile(r'(?:who\s+do\s+i\s+know\s+at|contacts?\s+at|people\s+at)\s+(.+)')
_TRAILING_PUNCT = re.compile(r'[?.,!]$')
_CODE_FENCE = re.compile(r'```(?:json)?\n?')


def title_case(text: str) -> str:
    """Upper-case the first letter of every word."""
    return re.sub(r'\b\w', lambda m: m.group(0).upper(), text)


def _strip_punct(text: str) -> str:
    return _TRAILING_PUNCT.sub('', text.strip())


class RuleBasedQueryParser:
    """Keyword heuristics. Deterministic; no external calls."""

    def parse(self, query: str) -> SearchIntent:
        lower = query.lower().strip()
        filters = SearchFilters()
        query_type = "general"

        if any(k in lower for k in INTRO_KEYWORDS):
            query_type = "intro_path"
            match = _INTRO_TARGET.search(lower)
            if match:
                filters.name = title_case(_strip_punct(match.group(1)))

        elif any(k in lower for k in STRENGTH_KEYWORDS + RECENCY_KEYWORDS):
            query_type = "relationship_query"
            filters.sort = "strength" if any(k in lower for k in STRENGTH_KEYWORDS) else "recency"

        elif any(k in lower for k in COMPANY_KEYWORDS):
            query_type = "company_search"
            match = _COMPANY_TARGET.search(lower)
            if match:
                filters.companies = [title_case(_strip_punct(match.group(1)))]

        elif " at " in lower:
            query_type = "person_search"
            parts = lower.split(" at ")
            if len(parts) == 2:
                filters.roles = [parts[0].strip()]
                filters.companies = [title_case(_strip_punct(parts[1]))]

        elif " in " in lower:
            query_type = "person_search"
            parts = lower.split(" in ")
            if len(parts) == 2:
                filters.roles = [parts[0].strip()]
                filters.locations = [title_case(_strip_punct(parts[1]))]

        if any(k in lower for k in DEGREE_KEYWORDS):
            filters.degree = 2

        return SearchIntent(query_type=query_type, filters=filters, natural_language=query)


class LLMQueryParser:
    """OpenAI JSON-mode parser with rule-based fallback."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        timeout: float = 8.0,
        fallback: Optional[RuleBasedQueryParser] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.timeout = timeout
        self.fallback = fallback or RuleBasedQueryParser()
        self.client = client or (AsyncOpenAI(api_key=api_key) if api_key else None)

    async def parse(self, query: str) -> SearchIntent:
        if self.client is None:
            return self.fallback.parse(query)

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": QUERY_PARSER_PROMPT},
                        {"role": "user", "content": query},
                    ],
                    response_format={"type": "json_object"},
                    temperature=0,
                    max_tokens=512,
                ),
                self.timeout,
            )
            content = response.choices[0].message.content or ""
            parsed = json.loads(_CODE_FENCE.sub('', content).strip())
            intent = SearchIntent(
                query_type=parsed.get("queryType") or "general",
                filters=SearchFilters.model_validate(parsed.get("filters") or {}),
                natural_language=query,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[SEARCH] Query parser timed out after {self.timeout}s, using rule-based fallback")
            return self.fallback.parse(query)
        except (json.JSONDecodeError, ValidationError, AttributeError, IndexError) as e:
            logger.warning(f"[SEARCH] Query parser returned unusable output, using rule-based fallback: {e}")
            return self.fallback.parse(query)
        except Exception as e:
            logger.error(f"[SEARCH] Query parser failed, using rule-based fallback: {e}")
            return self.fallback.parse(query)

        logger.debug(f"[SEARCH] Parsed query via LLM: type={intent.query_type}")
        return intent
