"""
Tests for the two-tier query parser.

The rule-based parser is what runs whenever the model is slow, failing or
unconfigured, so its keyword rules are tested on their own.
"""

import asyncio
from types import SimpleNamespace

import pytest

from kue.services.query_parser import LLMQueryParser, RuleBasedQueryParser, title_case


class TestRuleBasedQueryParser:
    """Deterministic keyword rules."""

    @pytest.fixture
    def parser(self):
        return RuleBasedQueryParser()

    @pytest.mark.parametrize("query, name", [
        ("introduce me to sarah chen", "Sarah Chen"),
        ("Can you introduce me to Sarah Chen?", "Sarah Chen"),
        ("How do I reach Marc Benioff?", "Marc Benioff"),
        ("path to jane doe", "Jane Doe"),
    ])
    def test_intro_path(self, parser, query, name):
        result = parser.parse(query)
        assert result.query_type == "intro_path"
        assert result.filters.name == name

    def test_strongest_connections(self, parser):
        result = parser.parse("my strongest connections")
        assert result.query_type == "relationship_query"
        assert result.filters.sort == "strength"

    def test_closest_contacts(self, parser):
        assert parser.parse("closest contacts").filters.sort == "strength"

    @pytest.mark.parametrize("query", [
        "people I haven't talked to recently",
        "recent contacts",
        "stale relationships",
    ])
    def test_recency(self, parser, query):
        result = parser.parse(query)
        assert result.query_type == "relationship_query"
        assert result.filters.sort == "recency"

    @pytest.mark.parametrize("query", [
        "who do I know at stripe?",
        "contacts at stripe",
        "people at stripe",
    ])
    def test_company_search(self, parser, query):
        result = parser.parse(query)
        assert result.query_type == "company_search"
        assert result.filters.companies == ["Stripe"]

    def test_role_at_company(self, parser):
        result = parser.parse("engineers at google")
        assert result.query_type == "person_search"
        assert result.filters.roles == ["engineers"]
        assert result.filters.companies == ["Google"]

    def test_role_in_location(self, parser):
        result = parser.parse("designers in new york.")
        assert result.query_type == "person_search"
        assert result.filters.roles == ["designers"]
        assert result.filters.locations == ["New York"]

    @pytest.mark.parametrize("query", [
        "second degree engineers at meta",
        "2nd degree contacts at meta",
        "friend of friend at meta",
        "mutual connections at meta",
    ])
    def test_degree_two_keywords(self, parser, query):
        assert parser.parse(query).filters.degree == 2

    def test_general_fallback(self, parser):
        result = parser.parse("ana lopez")
        assert result.query_type == "general"
        assert result.natural_language == "ana lopez"
        assert result.filters.degree is None

    def test_keeps_original_text(self, parser):
        assert parser.parse("Engineers at Google").natural_language == "Engineers at Google"


class TestTitleCase:
    def test_each_word(self):
        assert title_case("sarah chen") == "Sarah Chen"


class FakeCompletions:
    def __init__(self, content=None, error=None, delay=0.0):
        self.content = content
        self.error = error
        self.delay = delay
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def fake_client(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestLLMQueryParser:
    """OpenAI JSON-mode parsing with rule-based fallback."""

    @pytest.mark.asyncio
    async def test_uses_model_output(self):
        completions = FakeCompletions(
            '{"queryType": "person_search", "filters": {"roles": ["engineer"], "companies": ["Google"], "degree": 2}}'
        )
        parser = LLMQueryParser(client=fake_client(completions))

        result = await parser.parse("engineers at google, friends of friends")

        assert result.query_type == "person_search"
        assert result.filters.roles == ["engineer"]
        assert result.filters.degree == 2
        assert result.natural_language == "engineers at google, friends of friends"
        assert completions.calls[0]["response_format"] == {"type": "json_object"}
        assert completions.calls[0]["temperature"] == 0

    @pytest.mark.asyncio
    async def test_strips_code_fences(self):
        completions = FakeCompletions('```json\n{"queryType": "intro_path", "filters": {"name": "Sarah Chen"}}\n```')
        result = await LLMQueryParser(client=fake_client(completions)).parse("who can intro me to sarah")
        assert result.query_type == "intro_path"
        assert result.filters.name == "Sarah Chen"

    @pytest.mark.asyncio
    async def test_missing_query_type_means_general(self):
        completions = FakeCompletions('{"filters": {}}')
        result = await LLMQueryParser(client=fake_client(completions)).parse("hello")
        assert result.query_type == "general"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [
        "not json at all",
        '{"queryType": "teleport", "filters": {}}',
        '{"queryType": "person_search", "filters": {"degree": "many"}}',
    ])
    async def test_unusable_output_falls_back(self, content):
        parser = LLMQueryParser(client=fake_client(FakeCompletions(content)))
        result = await parser.parse("my strongest connections")
        assert result.query_type == "relationship_query"
        assert result.filters.sort == "strength"

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self):
        parser = LLMQueryParser(client=fake_client(FakeCompletions("{}", delay=1.0)), timeout=0.01)
        result = await parser.parse("engineers at google")
        assert result.query_type == "person_search"
        assert result.filters.companies == ["Google"]

    @pytest.mark.asyncio
    async def test_api_error_falls_back(self):
        parser = LLMQueryParser(client=fake_client(FakeCompletions(error=RuntimeError("rate limited"))))
        result = await parser.parse("who do I know at stripe")
        assert result.query_type == "company_search"

    @pytest.mark.asyncio
    async def test_no_api_key_uses_rules(self):
        parser = LLMQueryParser(api_key="")
        assert parser.client is None
        result = await parser.parse("introduce me to sarah chen")
        assert result.filters.name == "Sarah Chen"
