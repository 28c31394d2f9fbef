"""
Neo4j GraphStore.

Lowers every store operation into parameterised Cypher over the async
driver. Node labels: User, Person, Company. Person properties are camelCase;
companyKey / nameKey hold the company match keys for the configured mode.
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

from neo4j import AsyncGraphDatabase
from neo4j.exceptions import Neo4jError, ServiceUnavailable, SessionExpired

from ..errors import UpstreamUnavailable
from ..schemas import Contact
from ..services.merge_policy import MergeRule, apply_rule
from ..utils.normalize import company_match_key, normalize_email
from .cypher import lower_query
from .models import (
    COMPANY_PROFILE_FIELDS,
    KNOWS,
    PERSON_LINK_TYPES,
    PERSON_PROFILE_FIELDS,
    DuplicateGroup,
    EnrichmentStatus,
    InteractionSummary,
    NetworkNode,
    NetworkStats,
    Person,
    RawPath,
    RelationshipSignals,
    ScoreUpdate,
    StaleContact,
    UpsertCompanyResult,
    UpsertPersonResult,
    User,
)
from .plan import GraphQuery
from .store import GraphStore

logger = logging.getLogger("kue.graph")


SCHEMA_STATEMENTS = [
    "CREATE CONSTRAINT person_owner_email IF NOT EXISTS "
    "FOR (p:Person) REQUIRE (p.email, p.ownerId) IS UNIQUE",
    "CREATE CONSTRAINT company_domain IF NOT EXISTS "
    "FOR (c:Company) REQUIRE c.domain IS UNIQUE",
    "CREATE CONSTRAINT user_id IF NOT EXISTS "
    "FOR (u:User) REQUIRE u.id IS UNIQUE",
    "CREATE INDEX person_id IF NOT EXISTS FOR (p:Person) ON (p.id)",
    "CREATE INDEX company_name_key IF NOT EXISTS FOR (c:Company) ON (c.nameKey)",
    "CREATE FULLTEXT INDEX person_search IF NOT EXISTS "
    "FOR (p:Person) ON EACH [p.name, p.email, p.title, p.company]",
]

# Python field -> Person property
_PERSON_PROPS = {
    "name": "name",
    "first_name": "firstName",
    "last_name": "lastName",
    "phone": "phone",
    "title": "title",
    "company": "company",
    "location": "location",
    "linkedin_url": "linkedinUrl",
    "bio": "bio",
}

_PERSON_RETURN = """p {
  .id, .ownerId, .email, .name, .firstName, .lastName, .phone, .title,
  .company, .location, .linkedinUrl, .bio, .source, .enrichedAt,
  .createdAt, .updatedAt
} AS person"""


def _to_native(value: Any) -> Any:
    """Convert driver temporal types inside nested results to datetime."""
    if hasattr(value, "to_native"):
        return value.to_native()
    if isinstance(value, dict):
        return {k: _to_native(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_native(v) for v in value]
    return value


def _person(data: Optional[dict[str, Any]]) -> Optional[Person]:
    if not data:
        return None
    return Person(
        id=data["id"],
        owner_id=data["ownerId"],
        email=data["email"],
        name=data.get("name"),
        first_name=data.get("firstName"),
        last_name=data.get("lastName"),
        phone=data.get("phone"),
        title=data.get("title"),
        company=data.get("company"),
        location=data.get("location"),
        linkedin_url=data.get("linkedinUrl"),
        bio=data.get("bio"),
        source=list(data.get("source") or []),
        enriched_at=data.get("enrichedAt"),
        created_at=data.get("createdAt"),
        updated_at=data.get("updatedAt"),
    )


class Neo4jGraphStore(GraphStore):
    """GraphStore backed by a Neo4j database."""

    def __init__(
        self,
        uri: str,
        username: str,
        password: str,
        database: str = "neo4j",
        company_match_mode: str = "exact",
    ):
        super().__init__(company_match_mode)
        self._driver = AsyncGraphDatabase.driver(uri, auth=(username, password))
        self._database = database

    async def _run(self, cypher: str, params: Optional[dict[str, Any]] = None, name: str = "query") -> list[dict[str, Any]]:
        try:
            async with self._driver.session(database=self._database) as session:
                result = await session.run(cypher, params or {})
                records = await result.data()
        except (ServiceUnavailable, SessionExpired) as e:
            logger.error(f"[GRAPH] {name} unavailable: {e}")
            raise UpstreamUnavailable("neo4j", str(e)) from e
        except Neo4jError as e:
            logger.error(f"[GRAPH] {name} failed: {e}")
            raise
        return [_to_native(r) for r in records]

    def _company_key(self, name: Optional[str]) -> Optional[str]:
        return company_match_key(name, self.company_match_mode)

    async def ensure_schema(self) -> None:
        for statement in SCHEMA_STATEMENTS:
            await self._run(statement, name="ensure_schema")
        logger.info("[GRAPH] Schema ensured")

    async def close(self) -> None:
        await self._driver.close()

    # ----- identity / upsert -----

    async def ensure_user(self, user_id: str, email: str, name: Optional[str] = None) -> User:
        rows = await self._run(
            """
            MERGE (u:User {id: $userId})
            ON CREATE SET u.email = $email, u.name = $name, u.createdAt = datetime()
            ON MATCH SET u.email = $email, u.name = coalesce($name, u.name)
            RETURN u.id AS id, u.email AS email, u.name AS name, u.createdAt AS createdAt
            """,
            {"userId": user_id, "email": email, "name": name},
            name="ensure_user",
        )
        row = rows[0]
        return User(id=row["id"], email=row["email"], name=row["name"], created_at=row["createdAt"])

    async def get_user(self, user_id: str) -> Optional[User]:
        rows = await self._run(
            "MATCH (u:User {id: $userId}) "
            "RETURN u.id AS id, u.email AS email, u.name AS name, u.createdAt AS createdAt",
            {"userId": user_id},
            name="get_user",
        )
        if not rows:
            return None
        row = rows[0]
        return User(id=row["id"], email=row["email"], name=row["name"], created_at=row["createdAt"])

    async def list_users(self) -> list[User]:
        rows = await self._run(
            "MATCH (u:User) RETURN u.id AS id, u.email AS email, u.name AS name, u.createdAt AS createdAt",
            name="list_users",
        )
        return [User(id=r["id"], email=r["email"], name=r["name"], created_at=r["createdAt"]) for r in rows]

    async def upsert_person(self, contact: Contact, owner_id: str) -> UpsertPersonResult:
        rows = await self._run(
            """
            MERGE (p:Person {email: $email, ownerId: $ownerId})
            ON CREATE SET
              p.id = randomUUID(),
              p.name = coalesce($name, $email),
              p.firstName = $firstName,
              p.lastName = $lastName,
              p.phone = $phone,
              p.title = $title,
              p.company = $company,
              p.companyKey = $companyKey,
              p.linkedinUrl = $linkedinUrl,
              p.source = [$source],
              p.createdAt = datetime(),
              p.updatedAt = datetime(),
              p._isNew = true
            ON MATCH SET
              p.name = coalesce($name, p.name),
              p.firstName = coalesce($firstName, p.firstName),
              p.lastName = coalesce($lastName, p.lastName),
              p.phone = coalesce($phone, p.phone),
              p.title = coalesce($title, p.title),
              p.company = coalesce($company, p.company),
              p.companyKey = coalesce($companyKey, p.companyKey),
              p.linkedinUrl = coalesce($linkedinUrl, p.linkedinUrl),
              p.source = CASE WHEN $source IN p.source THEN p.source ELSE p.source + $source END,
              p.updatedAt = datetime(),
              p._isNew = false
            WITH p, p._isNew AS isNew
            REMOVE p._isNew
            RETURN p.id AS id, p.email AS email, isNew
            """,
            {
                "email": normalize_email(contact.email),
                "ownerId": owner_id,
                "name": contact.name or None,
                "firstName": contact.first_name or None,
                "lastName": contact.last_name or None,
                "phone": contact.phone or None,
                "title": contact.title or None,
                "company": contact.company or None,
                "companyKey": self._company_key(contact.company),
                "linkedinUrl": contact.linkedin_url or None,
                "source": contact.source,
            },
            name="upsert_person",
        )
        row = rows[0]
        return UpsertPersonResult(id=row["id"], email=row["email"], is_new=row["isNew"])

    async def upsert_company(self, name: str, domain: Optional[str] = None) -> UpsertCompanyResult:
        params = {"name": name, "domain": domain, "nameKey": self._company_key(name)}

        rows = []
        if domain:
            rows = await self._run(
                """
                MATCH (c:Company {domain: $domain})
                RETURN c.id AS id, c.name AS name, c.domain AS domain, false AS isNew
                """,
                params,
                name="company_by_domain",
            )
        if not rows:
            rows = await self._run(
                """
                OPTIONAL MATCH (existing:Company {nameKey: $nameKey})
                WHERE existing.domain IS NULL OR existing.domain = $domain
                WITH head(collect(existing)) AS existing
                CALL {
                  WITH existing
                  WITH existing WHERE existing IS NOT NULL
                  SET existing.domain = coalesce(existing.domain, $domain)
                  RETURN existing AS c, false AS isNew
                  UNION
                  WITH existing
                  WITH existing WHERE existing IS NULL
                  CREATE (c:Company {
                    id: randomUUID(), name: $name, nameKey: $nameKey,
                    domain: $domain, createdAt: datetime()
                  })
                  RETURN c, true AS isNew
                }
                RETURN c.id AS id, c.name AS name, c.domain AS domain, isNew
                """,
                params,
                name="upsert_company",
            )

        row = rows[0]
        return UpsertCompanyResult(id=row["id"], name=row["name"], domain=row["domain"], is_new=row["isNew"])

    async def upsert_knows(
        self,
        owner_id: str,
        person_id: str,
        source: str,
        summary: InteractionSummary,
    ) -> None:
        await self._run(
            """
            MATCH (u:User {id: $userId})
            MATCH (p:Person {id: $personId, ownerId: $userId})
            MERGE (u)-[r:KNOWS]->(p)
            ON CREATE SET
              r.source = $source,
              r.strength = 0.0,
              r.interactionCount = $count,
              r.emailsSent = $sent,
              r.emailsReceived = $received,
              r.meetingCount = $meetings,
              r.firstContact = coalesce($firstContact, datetime()),
              r.lastContact = coalesce($lastContact, datetime())
            ON MATCH SET
              r.source = $source,
              r.interactionCount = coalesce(r.interactionCount, 0) + $count,
              r.emailsSent = coalesce(r.emailsSent, 0) + $sent,
              r.emailsReceived = coalesce(r.emailsReceived, 0) + $received,
              r.meetingCount = coalesce(r.meetingCount, 0) + $meetings,
              r.firstContact = CASE
                WHEN r.firstContact IS NULL OR coalesce($firstContact, datetime()) < r.firstContact
                THEN coalesce($firstContact, datetime()) ELSE r.firstContact END,
              r.lastContact = CASE
                WHEN r.lastContact IS NULL OR coalesce($lastContact, datetime()) > r.lastContact
                THEN coalesce($lastContact, datetime()) ELSE r.lastContact END
            """,
            {
                "userId": owner_id,
                "personId": person_id,
                "source": source,
                "count": summary.interaction_count,
                "sent": summary.emails_sent,
                "received": summary.emails_received,
                "meetings": summary.meeting_count,
                "firstContact": summary.first_contact,
                "lastContact": summary.last_contact,
            },
            name="upsert_knows",
        )

    async def upsert_works_at(self, person_id: str, company_id: str) -> None:
        await self._run(
            """
            MATCH (p:Person {id: $personId})
            MATCH (c:Company {id: $companyId})
            MERGE (p)-[r:WORKS_AT]->(c)
            ON CREATE SET r.since = datetime()
            """,
            {"personId": person_id, "companyId": company_id},
            name="upsert_works_at",
        )

    async def link_persons(
        self,
        src_id: str,
        dst_id: str,
        rel_type: str = KNOWS,
        strength: Optional[float] = None,
    ) -> None:
        if rel_type not in PERSON_LINK_TYPES:
            raise ValueError(f"Unsupported person link type: {rel_type}")
        # rel_type is whitelisted above
        await self._run(
            f"""
            MATCH (a:Person {{id: $srcId}})
            MATCH (b:Person {{id: $dstId}})
            WHERE a <> b
            MERGE (a)-[r:{rel_type}]->(b)
            SET r.strength = coalesce($strength, r.strength)
            """,
            {"srcId": src_id, "dstId": dst_id, "strength": strength},
            name="link_persons",
        )

    # ----- lookups -----

    async def get_person(self, person_id: str, owner_id: str) -> Optional[Person]:
        rows = await self._run(
            f"MATCH (p:Person {{id: $personId, ownerId: $ownerId}}) RETURN {_PERSON_RETURN}",
            {"personId": person_id, "ownerId": owner_id},
            name="get_person",
        )
        return _person(rows[0]["person"]) if rows else None

    async def find_person_by_email(self, email: str, owner_id: str) -> Optional[Person]:
        rows = await self._run(
            f"MATCH (p:Person {{email: $email, ownerId: $ownerId}}) RETURN {_PERSON_RETURN} LIMIT 1",
            {"email": normalize_email(email), "ownerId": owner_id},
            name="find_person_by_email",
        )
        return _person(rows[0]["person"]) if rows else None

    async def find_person_by_name_company(
        self,
        owner_id: str,
        first_name: str,
        company: str,
        last_name: Optional[str] = None,
    ) -> Optional[Person]:
        last_name_clause = "AND toLower(p.lastName) = toLower($lastName)" if last_name is not None else ""
        rows = await self._run(
            f"""
            MATCH (p:Person {{ownerId: $ownerId}})
            WHERE toLower(p.firstName) = toLower($firstName)
              AND p.companyKey = $companyKey
              {last_name_clause}
            RETURN {_PERSON_RETURN}
            LIMIT 1
            """,
            {
                "ownerId": owner_id,
                "firstName": first_name,
                "lastName": last_name,
                "companyKey": self._company_key(company),
            },
            name="find_person_by_name_company",
        )
        return _person(rows[0]["person"]) if rows else None

    async def find_persons_by_name(
        self, owner_id: str, name: str, limit: int = 5, any_owner: bool = False
    ) -> list[Person]:
        rows = await self._run(
            f"""
            MATCH (p:Person)
            WHERE ($anyOwner OR p.ownerId = $ownerId)
              AND (toLower(p.name) CONTAINS toLower($name)
                   OR toLower(p.firstName) CONTAINS toLower($name)
                   OR toLower(p.lastName) CONTAINS toLower($name))
            RETURN {_PERSON_RETURN}
            ORDER BY CASE WHEN p.ownerId = $ownerId THEN 0 ELSE 1 END, p.createdAt
            LIMIT $limit
            """,
            {"ownerId": owner_id, "name": name, "limit": limit, "anyOwner": any_owner},
            name="find_persons_by_name",
        )
        return [_person(r["person"]) for r in rows]

    # ----- dedup maintenance -----

    async def find_email_duplicate_groups(self, owner_id: str) -> list[DuplicateGroup]:
        rows = await self._run(
            """
            MATCH (p:Person {ownerId: $ownerId})
            WITH p ORDER BY p.createdAt
            WITH p.email AS email, collect(p) AS persons
            WHERE size(persons) > 1
            RETURN email AS key, [x IN persons | x.id] AS ids, [x IN persons | x.name] AS names
            """,
            {"ownerId": owner_id},
            name="find_email_dupes",
        )
        return [DuplicateGroup(key=r["key"], person_ids=r["ids"], names=r["names"]) for r in rows]

    async def find_name_company_duplicate_groups(
        self, owner_id: str, limit: int = 100
    ) -> list[DuplicateGroup]:
        rows = await self._run(
            """
            MATCH (p:Person {ownerId: $ownerId})
            WHERE p.firstName IS NOT NULL AND p.companyKey IS NOT NULL
            WITH p ORDER BY p.createdAt
            WITH toLower(p.firstName) + '|' + p.companyKey AS key, collect(p) AS persons
            WHERE size(persons) > 1
            RETURN key, [x IN persons | x.id] AS ids, [x IN persons | x.name] AS names
            LIMIT $limit
            """,
            {"ownerId": owner_id, "limit": limit},
            name="find_name_dupes",
        )
        return [DuplicateGroup(key=r["key"], person_ids=r["ids"], names=r["names"]) for r in rows]

    async def merge_persons(self, owner_id: str, keep_id: str, remove_ids: list[str]) -> int:
        keep = await self.get_person(keep_id, owner_id)
        if keep is None:
            return 0

        removed = 0
        for remove_id in remove_ids:
            dupe = await self.get_person(remove_id, owner_id)
            if dupe is None or remove_id == keep_id:
                continue
            keep.source = apply_rule(MergeRule.UNION_SET, keep.source, dupe.source)
            rows = await self._run(
                """
                MATCH (keep:Person {id: $keepId, ownerId: $ownerId})
                MATCH (dupe:Person {id: $removeId, ownerId: $ownerId})
                SET keep.source = $source,
                    keep.updatedAt = datetime()
                WITH keep, dupe
                CALL {
                  WITH keep, dupe
                  OPTIONAL MATCH (u:User)-[old:KNOWS]->(dupe)
                  WITH keep, u, old WHERE old IS NOT NULL
                  MERGE (u)-[r:KNOWS]->(keep)
                  ON CREATE SET r.strength = 0.0, r.source = old.source
                  SET r.interactionCount = coalesce(r.interactionCount, 0) + coalesce(old.interactionCount, 0),
                      r.emailsSent = coalesce(r.emailsSent, 0) + coalesce(old.emailsSent, 0),
                      r.emailsReceived = coalesce(r.emailsReceived, 0) + coalesce(old.emailsReceived, 0),
                      r.meetingCount = coalesce(r.meetingCount, 0) + coalesce(old.meetingCount, 0),
                      r.firstContact = CASE WHEN r.firstContact IS NULL OR old.firstContact < r.firstContact
                                            THEN old.firstContact ELSE r.firstContact END,
                      r.lastContact = CASE WHEN r.lastContact IS NULL OR old.lastContact > r.lastContact
                                           THEN old.lastContact ELSE r.lastContact END
                  RETURN count(*) AS knowsMoved
                }
                CALL {
                  WITH keep, dupe
                  OPTIONAL MATCH (dupe)-[:WORKS_AT]->(c:Company)
                  WITH keep, c WHERE c IS NOT NULL
                  MERGE (keep)-[:WORKS_AT]->(c)
                  RETURN count(*) AS companiesMoved
                }
                CALL {
                  WITH keep, dupe
                  OPTIONAL MATCH (dupe)-[l:KNOWS|COLLEAGUES_WITH]->(other:Person)
                  WITH keep, l, other WHERE l IS NOT NULL AND other <> keep
                  FOREACH (_ IN CASE WHEN type(l) = 'KNOWS' THEN [1] ELSE [] END |
                    MERGE (keep)-[n:KNOWS]->(other) SET n.strength = coalesce(n.strength, l.strength))
                  FOREACH (_ IN CASE WHEN type(l) = 'COLLEAGUES_WITH' THEN [1] ELSE [] END |
                    MERGE (keep)-[:COLLEAGUES_WITH]->(other))
                  RETURN count(*) AS outMoved
                }
                CALL {
                  WITH keep, dupe
                  OPTIONAL MATCH (other:Person)-[l:KNOWS|COLLEAGUES_WITH]->(dupe)
                  WITH keep, l, other WHERE l IS NOT NULL AND other <> keep
                  FOREACH (_ IN CASE WHEN type(l) = 'KNOWS' THEN [1] ELSE [] END |
                    MERGE (other)-[n:KNOWS]->(keep) SET n.strength = coalesce(n.strength, l.strength))
                  FOREACH (_ IN CASE WHEN type(l) = 'COLLEAGUES_WITH' THEN [1] ELSE [] END |
                    MERGE (other)-[:COLLEAGUES_WITH]->(keep))
                  RETURN count(*) AS inMoved
                }
                DETACH DELETE dupe
                RETURN 1 AS removed
                """,
                {"keepId": keep_id, "removeId": remove_id, "ownerId": owner_id, "source": keep.source},
                name="merge_persons",
            )
            removed += len(rows)
        return removed

    # ----- scoring -----

    async def list_relationship_signals(
        self, owner_id: str, email: Optional[str] = None
    ) -> list[RelationshipSignals]:
        email_clause = "AND p.email = $email" if email else ""
        rows = await self._run(
            f"""
            MATCH (u:User {{id: $ownerId}})-[r:KNOWS]->(p:Person {{ownerId: $ownerId}})
            WHERE true {email_clause}
            RETURN
              p.id AS personId,
              p.email AS email,
              p.source AS sources,
              r.interactionCount AS interactionCount,
              r.emailsSent AS emailsSent,
              r.emailsReceived AS emailsReceived,
              r.meetingCount AS meetingCount,
              r.firstContact AS firstContact,
              r.lastContact AS lastContact
            """,
            {"ownerId": owner_id, "email": normalize_email(email) if email else None},
            name="relationship_signals",
        )
        return [
            RelationshipSignals(
                person_id=r["personId"],
                email=r["email"],
                sources=list(r["sources"] or []),
                interaction_count=r["interactionCount"] or 0,
                emails_sent=r["emailsSent"] or 0,
                emails_received=r["emailsReceived"] or 0,
                meeting_count=r["meetingCount"] or 0,
                first_contact=r["firstContact"],
                last_contact=r["lastContact"],
            )
            for r in rows
        ]

    async def update_scores(self, owner_id: str, updates: list[ScoreUpdate]) -> None:
        batch_size = 50
        for i in range(0, len(updates), batch_size):
            batch = updates[i:i + batch_size]
            await self._run(
                """
                UNWIND $scores AS s
                MATCH (u:User {id: $ownerId})-[r:KNOWS]->(p:Person {id: s.personId, ownerId: $ownerId})
                SET r.strength = s.score,
                    r.scoreBreakdown = s.breakdownJson,
                    r.scoredAt = datetime()
                """,
                {
                    "ownerId": owner_id,
                    "scores": [
                        {"personId": u.person_id, "score": u.score, "breakdownJson": json.dumps(u.breakdown)}
                        for u in batch
                    ],
                },
                name="score_batch_update",
            )

    async def find_stale(
        self,
        owner_id: str,
        cutoff: datetime,
        max_score: float,
        limit: int,
    ) -> list[StaleContact]:
        rows = await self._run(
            """
            MATCH (u:User {id: $ownerId})-[r:KNOWS]->(p:Person {ownerId: $ownerId})
            WHERE r.lastContact IS NOT NULL
              AND r.lastContact < $cutoff
              AND r.strength <= $maxScore
            RETURN
              p.id AS personId,
              p.email AS email,
              p.name AS name,
              duration.inDays(r.lastContact, datetime()).days AS daysSinceContact,
              r.strength AS score
            ORDER BY r.strength ASC
            LIMIT $limit
            """,
            {"ownerId": owner_id, "cutoff": cutoff, "maxScore": max_score, "limit": limit},
            name="find_stale",
        )
        return [
            StaleContact(
                person_id=r["personId"],
                email=r["email"],
                name=r["name"],
                days_since_contact=r["daysSinceContact"] or 0,
                score=r["score"] or 0.0,
            )
            for r in rows
        ]

    # ----- traversal -----

    async def find_second_degree(
        self,
        owner_id: str,
        min_strength: float = 0.0,
        limit: int = 50,
        max_extra_hops: int = 2,
    ) -> list[NetworkNode]:
        hops = max(1, int(max_extra_hops))
        rows = await self._run(
            f"""
            MATCH (u:User {{id: $ownerId}})-[r1:KNOWS]->(p1:Person)-[:COLLEAGUES_WITH|KNOWS*1..{hops}]->(p2:Person)
            WHERE p2.ownerId <> $ownerId
              AND NOT (u)-[:KNOWS]->(p2)
              AND r1.strength >= $minStrength
            WITH p2, p1, r1
            ORDER BY r1.strength DESC
            WITH p2, head(collect(p1)) AS via, max(r1.strength) AS strength
            RETURN p2 {{ .id, .email, .name, .title, .company }} AS node,
                   via {{ .id, .name, .email, .title, .company }} AS via,
                   strength
            ORDER BY strength DESC
            LIMIT $limit
            """,
            {"ownerId": owner_id, "minStrength": min_strength, "limit": limit},
            name="second_degree",
        )
        return [
            NetworkNode(**r["node"], degree=2, strength=r["strength"] or 0.0, via=r["via"])
            for r in rows
        ]

    async def shortest_knows_path(
        self, owner_id: str, target_id: str, max_hops: int = 4
    ) -> Optional[RawPath]:
        hops = max(1, int(max_hops))
        rows = await self._run(
            f"""
            MATCH (u:User {{id: $ownerId}})
            MATCH (target:Person {{id: $targetId}})
            MATCH path = shortestPath((u)-[:KNOWS*..{hops}]-(target))
            RETURN [n IN nodes(path) | n {{
                      .id, .email, .name, .title, .company,
                      kind: CASE WHEN n:User THEN 'user' ELSE 'person' END
                    }}] AS nodes,
                   [r IN relationships(path) | r.strength] AS strengths
            """,
            {"ownerId": owner_id, "targetId": target_id},
            name="intro_path",
        )
        if not rows:
            return None

        # Degree is the position along the path; the owner is 0
        nodes = [
            NetworkNode(
                id=n["id"], email=n.get("email"), name=n.get("name"),
                title=n.get("title"), company=n.get("company"),
                degree=position, kind=n["kind"],
            )
            for position, n in enumerate(rows[0]["nodes"])
        ]
        return RawPath(nodes=nodes, edge_strengths=rows[0]["strengths"])

    async def network_stats(self, owner_id: str) -> NetworkStats:
        rows = await self._run(
            """
            MATCH (u:User {id: $ownerId})-[r:KNOWS]->(p:Person {ownerId: $ownerId})
            OPTIONAL MATCH (p)-[:WORKS_AT]->(c:Company)
            WITH p, r, c
            RETURN
              count(DISTINCT p) AS totalContacts,
              count(DISTINCT c) AS companies,
              avg(r.strength) AS avgStrength,
              collect(DISTINCT {id: p.id, source: p.source}) AS personSources
            """,
            {"ownerId": owner_id},
            name="network_stats",
        )
        if not rows or not rows[0]["totalContacts"]:
            return NetworkStats()

        row = rows[0]
        sources: dict[str, int] = {}
        for entry in row["personSources"]:
            for tag in entry.get("source") or []:
                sources[tag] = sources.get(tag, 0) + 1

        return NetworkStats(
            total_contacts=row["totalContacts"],
            companies=row["companies"],
            sources=sources,
            avg_strength=row["avgStrength"] or 0.0,
        )

    async def top_companies(self, owner_id: str, limit: int = 3) -> list[str]:
        rows = await self._run(
            """
            MATCH (u:User {id: $ownerId})-[:KNOWS]->(p:Person {ownerId: $ownerId})-[:WORKS_AT]->(c:Company)
            RETURN c.name AS name, count(DISTINCT p) AS contacts
            ORDER BY contacts DESC
            LIMIT $limit
            """,
            {"ownerId": owner_id, "limit": limit},
            name="top_companies",
        )
        return [r["name"] for r in rows]

    # ----- query plans -----

    async def execute(self, query: GraphQuery) -> list[dict[str, Any]]:
        cypher, params = lower_query(query)
        rows = await self._run(cypher, params, name=query.query_type)
        return [r["result"] for r in rows]

    # ----- enrichment -----

    async def list_unenriched(
        self, owner_id: str, limit: int = 50, force_refresh: bool = False
    ) -> list[Person]:
        rows = await self._run(
            f"""
            MATCH (p:Person {{ownerId: $ownerId}})
            WHERE $force OR p.enrichedAt IS NULL
            RETURN {_PERSON_RETURN}
            ORDER BY p.createdAt
            LIMIT $limit
            """,
            {"ownerId": owner_id, "force": force_refresh, "limit": limit},
            name="list_unenriched",
        )
        return [_person(r["person"]) for r in rows]

    async def apply_person_enrichment(
        self, owner_id: str, person_id: str, fields: dict[str, Any]
    ) -> list[str]:
        person = await self.get_person(person_id, owner_id)
        if person is None:
            return []

        updates = {
            _PERSON_PROPS[name]: value
            for name, value in fields.items()
            if name in PERSON_PROFILE_FIELDS and value not in (None, "") and not getattr(person, name)
        }
        # Property names come from the fixed _PERSON_PROPS map
        assignments = "".join(f", p.{prop} = coalesce(p.{prop}, ${prop})" for prop in updates)
        await self._run(
            f"""
            MATCH (p:Person {{id: $personId, ownerId: $ownerId}})
            SET p.enrichedAt = datetime(), p.updatedAt = datetime(){assignments}
            """,
            {"personId": person_id, "ownerId": owner_id, **updates},
            name="apply_person_enrichment",
        )
        return [name for name in PERSON_PROFILE_FIELDS if _PERSON_PROPS[name] in updates]

    async def enrich_company(self, name: str, fields: dict[str, Any]) -> list[str]:
        values = {k: fields.get(k) for k in COMPANY_PROFILE_FIELDS}
        rows = await self._run(
            """
            MATCH (c:Company {nameKey: $nameKey})
            WITH c LIMIT 1
            WITH c, [k IN $keys WHERE c[k] IS NULL AND $values[k] IS NOT NULL] AS filled
            SET c.domain = coalesce(c.domain, $values.domain),
                c.industry = coalesce(c.industry, $values.industry),
                c.size = coalesce(c.size, $values.size),
                c.location = coalesce(c.location, $values.location)
            RETURN filled
            """,
            {"nameKey": self._company_key(name), "keys": list(COMPANY_PROFILE_FIELDS), "values": values},
            name="enrich_company",
        )
        return rows[0]["filled"] if rows else []

    async def enrichment_status(self, owner_id: str) -> EnrichmentStatus:
        rows = await self._run(
            """
            MATCH (p:Person {ownerId: $ownerId})
            RETURN count(p) AS total, count(p.enrichedAt) AS enriched
            """,
            {"ownerId": owner_id},
            name="enrichment_status",
        )
        row = rows[0] if rows else {"total": 0, "enriched": 0}
        return EnrichmentStatus(total=row["total"], enriched=row["enriched"])
