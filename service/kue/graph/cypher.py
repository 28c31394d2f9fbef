"""
GraphQuery -> Cypher lowering.

Pure functions: no driver, no I/O. Every user-supplied value travels as a
parameter; the only text interpolated into a statement is the validated
traversal depth, which Cypher does not accept as a parameter.
"""

import re
from typing import Any

from .plan import (
    FIELD_COMPANY,
    FIELD_COMPANY_NAME,
    FIELD_INDUSTRY,
    FIELD_LOCATION,
    FIELD_NAME,
    FIELD_TITLE,
    SORT_RECENCY,
    FilterPredicate,
    GraphQuery,
)


PERSON_PROJECTION = (
    ".id, .email, .name, first_name: p.firstName, last_name: p.lastName, "
    ".title, .company, .location, linkedin_url: p.linkedinUrl, .source"
)
COMPANY_INFO = "c { .name, .domain, .industry }"
VIA_PROJECTION = "via { .id, .name, .email, .title, .company }"

# Lucene special characters: + - && || ! ( ) { } [ ] ^ " ~ * ? : \ /
_LUCENE_SPECIAL = re.compile(r'([+\-&|!(){}\[\]^"~*?:\\/])')

# Per-field condition template; {v} is replaced with the parameter name
_FIELD_CONDITIONS = {
    FIELD_NAME: (
        "(toLower(p.name) CONTAINS toLower(${v}) "
        "OR toLower(p.firstName) CONTAINS toLower(${v}) "
        "OR toLower(p.lastName) CONTAINS toLower(${v}))"
    ),
    FIELD_TITLE: "toLower(p.title) CONTAINS toLower(${v})",
    FIELD_COMPANY: "(toLower(p.company) CONTAINS toLower(${v}) OR toLower(c.name) CONTAINS toLower(${v}))",
    FIELD_LOCATION: "toLower(p.location) CONTAINS toLower(${v})",
    FIELD_INDUSTRY: "toLower(c.industry) CONTAINS toLower(${v})",
    FIELD_COMPANY_NAME: "toLower(c.name) CONTAINS toLower(${v})",
}


def sanitize_lucene(text: str) -> str:
    """Escape Lucene query syntax characters."""
    return _LUCENE_SPECIAL.sub(r'\\\1', text)


def build_where(predicates: list[FilterPredicate], params: dict[str, Any]) -> str:
    """AND of per-predicate OR groups. Adds one parameter per value."""
    groups = []
    for i, predicate in enumerate(predicates):
        template = _FIELD_CONDITIONS.get(predicate.field)
        if template is None:
            raise ValueError(f"Unknown filter field: {predicate.field}")

        conditions = []
        for j, value in enumerate(predicate.values):
            name = f"f{i}_{j}"
            params[name] = value
            conditions.append(template.replace("{v}", name))
        if conditions:
            groups.append("(" + " OR ".join(conditions) + ")")

    if not groups:
        return ""
    return "WHERE " + "\n  AND ".join(groups)


def _order_by(sort: str) -> str:
    if sort == SORT_RECENCY:
        return "ORDER BY result.last_contact DESC"
    return "ORDER BY result.strength DESC"


def _person_search(query: GraphQuery, params: dict[str, Any]) -> str:
    where = build_where(query.predicates, params)

    if query.degree <= 1:
        return f"""MATCH (u:User {{id: $ownerId}})-[r:KNOWS]->(p:Person {{ownerId: $ownerId}})
OPTIONAL MATCH (p)-[:WORKS_AT]->(c:Company)
WITH r, p, c
{where}
RETURN DISTINCT p {{
  {PERSON_PROJECTION},
  strength: r.strength,
  last_contact: r.lastContact,
  degree: 1
}} AS result
{_order_by(query.sort)}
LIMIT $limit"""

    extra_hops = int(query.extra_hops)
    params["degree"] = int(query.degree)
    return f"""MATCH (u:User {{id: $ownerId}})-[r1:KNOWS]->(p1:Person)-[:COLLEAGUES_WITH|KNOWS*1..{extra_hops}]->(p:Person)
WHERE p.ownerId <> $ownerId AND NOT (u)-[:KNOWS]->(p)
OPTIONAL MATCH (p)-[:WORKS_AT]->(c:Company)
WITH r1, p1, p, c
{where}
WITH p, p1, r1
ORDER BY r1.strength DESC
WITH p, head(collect(p1)) AS via, max(r1.strength) AS strength
RETURN p {{
  {PERSON_PROJECTION},
  strength: strength,
  degree: $degree,
  via: {VIA_PROJECTION}
}} AS result
{_order_by(query.sort)}
LIMIT $limit"""


def _company_search(query: GraphQuery, params: dict[str, Any]) -> str:
    where = build_where(query.predicates, params)
    return f"""MATCH (c:Company)
{where}
OPTIONAL MATCH (p:Person {{ownerId: $ownerId}})-[:WORKS_AT]->(c)
OPTIONAL MATCH (u:User {{id: $ownerId}})-[r:KNOWS]->(p)
WITH c, p, r
ORDER BY coalesce(r.strength, 0.0) DESC
WITH c, collect(DISTINCT p {{ .id, .email, .name, .title, strength: r.strength }}) AS contacts
RETURN c {{ .id, .name, .domain, .industry, .size, .location, contacts: contacts }} AS result
ORDER BY size(contacts) DESC
LIMIT $limit"""


def _relationship_query(query: GraphQuery, params: dict[str, Any]) -> str:
    conditions = []
    if query.min_strength_exclusive is not None:
        params["minStrength"] = query.min_strength_exclusive
        conditions.append("r.strength > $minStrength")
    if query.require_last_contact:
        conditions.append("r.lastContact IS NOT NULL")
    where = ("WHERE " + " AND ".join(conditions)) if conditions else ""

    return f"""MATCH (u:User {{id: $ownerId}})-[r:KNOWS]->(p:Person {{ownerId: $ownerId}})
{where}
OPTIONAL MATCH (p)-[:WORKS_AT]->(c:Company)
WITH r, p, head(collect(c)) AS c
RETURN p {{
  {PERSON_PROJECTION},
  strength: r.strength,
  last_contact: r.lastContact,
  interaction_count: r.interactionCount,
  degree: 1,
  company_info: {COMPANY_INFO}
}} AS result
{_order_by(query.sort)}
LIMIT $limit"""


def _general_search(query: GraphQuery, params: dict[str, Any]) -> str:
    text = (query.search_text or "").strip()
    params["searchTerm"] = f"{sanitize_lucene(text)}~"
    return f"""CALL db.index.fulltext.queryNodes('person_search', $searchTerm) YIELD node AS p, score
WHERE p.ownerId = $ownerId
OPTIONAL MATCH (u:User {{id: $ownerId}})-[r:KNOWS]->(p)
OPTIONAL MATCH (p)-[:WORKS_AT]->(c:Company)
WITH p, score, r, head(collect(c)) AS c
RETURN p {{
  {PERSON_PROJECTION},
  strength: coalesce(r.strength, 0.0),
  degree: CASE WHEN r IS NOT NULL THEN 1 ELSE 0 END,
  relevance_score: score,
  company_info: {COMPANY_INFO}
}} AS result
ORDER BY result.relevance_score DESC, result.strength DESC
LIMIT $limit"""


_LOWERINGS = {
    "person_search": _person_search,
    "company_search": _company_search,
    "relationship_query": _relationship_query,
    "general": _general_search,
}


def lower_query(query: GraphQuery) -> tuple[str, dict[str, Any]]:
    """
    Lower a plan to (cypher, params). Each row has a single `result` column.

    intro_path plans are resolved by the traversal engine and have no
    single-statement lowering.
    """
    lowering = _LOWERINGS.get(query.query_type)
    if lowering is None:
        raise ValueError(f"Query type cannot be lowered: {query.query_type}")

    params: dict[str, Any] = {"ownerId": query.owner_id, "limit": int(query.limit)}
    cypher = lowering(query, params)
    return cypher, params
