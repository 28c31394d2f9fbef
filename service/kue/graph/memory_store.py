"""
In-memory GraphStore.

Reference implementation of the graph semantics, used by tests and by local
development when no Neo4j URI is configured. Coroutines never await while
mutating, so each operation is atomic under asyncio.
"""

import re
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional

import networkx as nx

from ..schemas import Contact
from ..services.merge_policy import MergeRule, apply_rule
from ..utils.normalize import company_match_key, normalize_email
from .models import (
    COMPANY_PROFILE_FIELDS,
    KNOWS,
    PERSON_LINK_TYPES,
    PERSON_PROFILE_FIELDS,
    Company,
    DuplicateGroup,
    EnrichmentStatus,
    InteractionSummary,
    KnowsEdge,
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
from .store import GraphStore


CONTACT_FIELDS = ("name", "first_name", "last_name", "phone", "title", "company", "linkedin_url")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # Naive timestamps are taken as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle.lower() in haystack.lower()


def person_row(person: Person, **extra: Any) -> dict[str, Any]:
    """Person-shaped search result record."""
    row = {
        "id": person.id,
        "email": person.email,
        "name": person.name,
        "first_name": person.first_name,
        "last_name": person.last_name,
        "title": person.title,
        "company": person.company,
        "location": person.location,
        "linkedin_url": person.linkedin_url,
        "source": list(person.source),
    }
    row.update(extra)
    return row


class InMemoryGraphStore(GraphStore):
    """Dict-backed property graph."""

    def __init__(self, company_match_mode: str = "exact"):
        super().__init__(company_match_mode)
        self.users: dict[str, User] = {}
        self.persons: dict[str, Person] = {}
        self.companies: dict[str, Company] = {}
        # (user_id, person_id) -> edge
        self.knows: dict[tuple[str, str], KnowsEdge] = {}
        # (src_person_id, dst_person_id, rel_type) -> strength
        self.person_links: dict[tuple[str, str, str], Optional[float]] = {}
        # (person_id, company_id)
        self.works_at: set[tuple[str, str]] = set()

    # ----- helpers -----

    def _owned(self, owner_id: str) -> list[Person]:
        return [p for p in self.persons.values() if p.owner_id == owner_id]

    def _company_of(self, person_id: str) -> Optional[Company]:
        for pid, cid in self.works_at:
            if pid == person_id:
                return self.companies.get(cid)
        return None

    def _company_key(self, name: Optional[str]) -> Optional[str]:
        return company_match_key(name, self.company_match_mode)

    def put_person(self, person: Person) -> Person:
        """Raw insert without identity merging (fixtures, imports of legacy data)."""
        self.persons[person.id] = person
        return person

    # ----- identity / upsert -----

    async def ensure_user(self, user_id: str, email: str, name: Optional[str] = None) -> User:
        user = self.users.get(user_id)
        if user is None:
            user = User(id=user_id, email=email, name=name, created_at=_now())
            self.users[user_id] = user
        else:
            user.email = email
            user.name = name or user.name
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    async def list_users(self) -> list[User]:
        return list(self.users.values())

    async def upsert_person(self, contact: Contact, owner_id: str) -> UpsertPersonResult:
        email = normalize_email(contact.email)
        existing = await self.find_person_by_email(email, owner_id)
        now = _now()

        if existing is None:
            person = Person(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                email=email,
                source=[contact.source],
                created_at=now,
                updated_at=now,
            )
            for name in CONTACT_FIELDS:
                setattr(person, name, getattr(contact, name) or None)
            person.name = person.name or email
            self.persons[person.id] = person
            return UpsertPersonResult(id=person.id, email=person.email, is_new=True)

        for name in CONTACT_FIELDS:
            value = getattr(contact, name)
            if value:
                setattr(existing, name, value)
        existing.source = apply_rule(MergeRule.UNION_SET, existing.source, [contact.source])
        existing.updated_at = now
        return UpsertPersonResult(id=existing.id, email=existing.email, is_new=False)

    async def upsert_company(self, name: str, domain: Optional[str] = None) -> UpsertCompanyResult:
        company = None
        if domain:
            company = next((c for c in self.companies.values() if c.domain == domain), None)
        if company is None:
            key = self._company_key(name)
            company = next(
                (c for c in self.companies.values()
                 if self._company_key(c.name) == key and (c.domain is None or c.domain == domain)),
                None,
            )

        if company is None:
            company = Company(id=str(uuid.uuid4()), name=name, domain=domain, created_at=_now())
            self.companies[company.id] = company
            return UpsertCompanyResult(id=company.id, name=company.name, domain=company.domain, is_new=True)

        if domain and not company.domain:
            company.domain = domain
        return UpsertCompanyResult(id=company.id, name=company.name, domain=company.domain, is_new=False)

    async def upsert_knows(
        self,
        owner_id: str,
        person_id: str,
        source: str,
        summary: InteractionSummary,
    ) -> None:
        if owner_id not in self.users or person_id not in self.persons:
            return

        now = _now()
        first = _aware(summary.first_contact) or now
        last = _aware(summary.last_contact) or now
        edge = self.knows.get((owner_id, person_id))

        if edge is None:
            self.knows[(owner_id, person_id)] = KnowsEdge(
                user_id=owner_id,
                person_id=person_id,
                source=source,
                strength=0.0,
                interaction_count=summary.interaction_count,
                emails_sent=summary.emails_sent,
                emails_received=summary.emails_received,
                meeting_count=summary.meeting_count,
                first_contact=first,
                last_contact=last,
            )
            return

        edge.interaction_count += summary.interaction_count
        edge.emails_sent += summary.emails_sent
        edge.emails_received += summary.emails_received
        edge.meeting_count += summary.meeting_count
        edge.first_contact = min(edge.first_contact, first) if edge.first_contact else first
        edge.last_contact = max(edge.last_contact, last) if edge.last_contact else last
        edge.source = source

    async def upsert_works_at(self, person_id: str, company_id: str) -> None:
        if person_id in self.persons and company_id in self.companies:
            self.works_at.add((person_id, company_id))

    async def link_persons(
        self,
        src_id: str,
        dst_id: str,
        rel_type: str = KNOWS,
        strength: Optional[float] = None,
    ) -> None:
        if rel_type not in PERSON_LINK_TYPES:
            raise ValueError(f"Unsupported person link type: {rel_type}")
        if src_id not in self.persons or dst_id not in self.persons or src_id == dst_id:
            return
        key = (src_id, dst_id, rel_type)
        if strength is not None or key not in self.person_links:
            self.person_links[key] = strength

    # ----- lookups -----

    async def get_person(self, person_id: str, owner_id: str) -> Optional[Person]:
        person = self.persons.get(person_id)
        if person is None or person.owner_id != owner_id:
            return None
        return person

    async def find_person_by_email(self, email: str, owner_id: str) -> Optional[Person]:
        email = normalize_email(email)
        for person in self.persons.values():
            if person.owner_id == owner_id and person.email == email:
                return person
        return None

    async def find_person_by_name_company(
        self,
        owner_id: str,
        first_name: str,
        company: str,
        last_name: Optional[str] = None,
    ) -> Optional[Person]:
        company_key = self._company_key(company)
        for person in self._owned(owner_id):
            if not person.first_name or person.first_name.lower() != first_name.lower():
                continue
            if self._company_key(person.company) != company_key:
                continue
            if last_name is not None and (person.last_name or "").lower() != last_name.lower():
                continue
            return person
        return None

    async def find_persons_by_name(
        self, owner_id: str, name: str, limit: int = 5, any_owner: bool = False
    ) -> list[Person]:
        pool = list(self.persons.values()) if any_owner else self._owned(owner_id)
        found = [
            p for p in pool
            if _contains(p.name, name) or _contains(p.first_name, name) or _contains(p.last_name, name)
        ]
        found.sort(key=lambda p: p.owner_id != owner_id)
        return found[:limit]

    # ----- dedup maintenance -----

    async def find_email_duplicate_groups(self, owner_id: str) -> list[DuplicateGroup]:
        groups: dict[str, list[Person]] = {}
        for person in self._owned(owner_id):
            groups.setdefault(person.email, []).append(person)
        return [
            DuplicateGroup(key=email, person_ids=[p.id for p in ps], names=[p.name for p in ps])
            for email, ps in groups.items()
            if len(ps) > 1
        ]

    async def find_name_company_duplicate_groups(
        self, owner_id: str, limit: int = 100
    ) -> list[DuplicateGroup]:
        groups: dict[str, list[Person]] = {}
        for person in self._owned(owner_id):
            if not person.first_name or not person.company:
                continue
            key = f"{person.first_name.lower()}|{self._company_key(person.company)}"
            groups.setdefault(key, []).append(person)
        found = [
            DuplicateGroup(key=key, person_ids=[p.id for p in ps], names=[p.name for p in ps])
            for key, ps in groups.items()
            if len(ps) > 1
        ]
        return found[:limit]

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

            # Fold KNOWS edges pointing at the duplicate into the kept node
            for (user_id, person_id), edge in list(self.knows.items()):
                if person_id != remove_id:
                    continue
                del self.knows[(user_id, person_id)]
                kept_edge = self.knows.get((user_id, keep_id))
                if kept_edge is None:
                    self.knows[(user_id, keep_id)] = replace(edge, person_id=keep_id)
                    continue
                kept_edge.interaction_count += edge.interaction_count
                kept_edge.emails_sent += edge.emails_sent
                kept_edge.emails_received += edge.emails_received
                kept_edge.meeting_count += edge.meeting_count
                firsts = [d for d in (kept_edge.first_contact, edge.first_contact) if d]
                lasts = [d for d in (kept_edge.last_contact, edge.last_contact) if d]
                kept_edge.first_contact = min(firsts) if firsts else None
                kept_edge.last_contact = max(lasts) if lasts else None

            for (src, dst, rel_type), strength in list(self.person_links.items()):
                if remove_id not in (src, dst):
                    continue
                del self.person_links[(src, dst, rel_type)]
                src = keep_id if src == remove_id else src
                dst = keep_id if dst == remove_id else dst
                if src != dst:
                    self.person_links.setdefault((src, dst, rel_type), strength)

            for pid, cid in list(self.works_at):
                if pid == remove_id:
                    self.works_at.discard((pid, cid))
                    self.works_at.add((keep_id, cid))

            del self.persons[remove_id]
            removed += 1

        keep.updated_at = _now()
        return removed

    # ----- scoring -----

    async def list_relationship_signals(
        self, owner_id: str, email: Optional[str] = None
    ) -> list[RelationshipSignals]:
        email = normalize_email(email) if email else None
        signals = []
        for (user_id, person_id), edge in self.knows.items():
            person = self.persons.get(person_id)
            if user_id != owner_id or person is None or person.owner_id != owner_id:
                continue
            if email and person.email != email:
                continue
            signals.append(RelationshipSignals(
                person_id=person.id,
                email=person.email,
                sources=list(person.source),
                interaction_count=edge.interaction_count,
                emails_sent=edge.emails_sent,
                emails_received=edge.emails_received,
                meeting_count=edge.meeting_count,
                first_contact=edge.first_contact,
                last_contact=edge.last_contact,
            ))
        return signals

    async def update_scores(self, owner_id: str, updates: list[ScoreUpdate]) -> None:
        now = _now()
        for update in updates:
            edge = self.knows.get((owner_id, update.person_id))
            if edge is None:
                continue
            edge.strength = update.score
            edge.score_breakdown = dict(update.breakdown)
            edge.scored_at = now

    async def find_stale(
        self,
        owner_id: str,
        cutoff: datetime,
        max_score: float,
        limit: int,
    ) -> list[StaleContact]:
        now = _now()
        stale = []
        for (user_id, person_id), edge in self.knows.items():
            person = self.persons.get(person_id)
            if user_id != owner_id or person is None or person.owner_id != owner_id:
                continue
            if edge.last_contact is None or edge.last_contact >= cutoff:
                continue
            if edge.strength > max_score:
                continue
            stale.append(StaleContact(
                person_id=person.id,
                email=person.email,
                name=person.name,
                days_since_contact=(now - edge.last_contact).days,
                score=edge.strength,
            ))
        stale.sort(key=lambda s: s.score)
        return stale[:limit]

    # ----- traversal -----

    def _person_link_graph(self) -> nx.DiGraph:
        """Directed Person -> Person hops over KNOWS | COLLEAGUES_WITH."""
        G = nx.DiGraph()
        G.add_edges_from((src, dst) for (src, dst, _rel) in self.person_links)
        return G

    def _knows_graph(self) -> nx.Graph:
        """
        Undirected KNOWS graph: User -> Person edges plus Person -> Person
        KNOWS links. Nodes are ("user", id) / ("person", id).
        """
        G = nx.Graph()
        for (user_id, person_id), edge in self.knows.items():
            G.add_edge(("user", user_id), ("person", person_id), strength=edge.strength)
        for (src, dst, rel_type), strength in self.person_links.items():
            if rel_type != KNOWS:
                continue
            u, v = ("person", src), ("person", dst)
            # Links in both directions collapse into one edge; keep a scored value
            if G.has_edge(u, v) and G.edges[u, v]["strength"] is not None:
                continue
            G.add_edge(u, v, strength=strength)
        return G

    def _beyond_first_degree(
        self, owner_id: str, max_extra_hops: int, min_strength: float = 0.0
    ) -> list[tuple[Person, Person, float]]:
        """(candidate, mediator, mediator strength) for friends-of-friends, best mediator kept."""
        links = self._person_link_graph()
        best: dict[str, tuple[Person, Person, float]] = {}
        for (user_id, p1_id), r1 in self.knows.items():
            if user_id != owner_id or r1.strength < min_strength:
                continue
            p1 = self.persons.get(p1_id)
            if p1 is None or p1_id not in links:
                continue
            reach = nx.single_source_shortest_path_length(links, p1_id, cutoff=max_extra_hops)
            for p2_id, hops in reach.items():
                if hops == 0:
                    continue
                p2 = self.persons[p2_id]
                if p2.owner_id == owner_id or (owner_id, p2_id) in self.knows:
                    continue
                current = best.get(p2_id)
                if current is None or r1.strength > current[2]:
                    best[p2_id] = (p2, p1, r1.strength)
        return sorted(best.values(), key=lambda item: item[2], reverse=True)

    async def find_second_degree(
        self,
        owner_id: str,
        min_strength: float = 0.0,
        limit: int = 50,
        max_extra_hops: int = 2,
    ) -> list[NetworkNode]:
        found = self._beyond_first_degree(owner_id, max_extra_hops, min_strength)
        return [
            NetworkNode(
                id=p2.id,
                email=p2.email,
                name=p2.name,
                title=p2.title,
                company=p2.company,
                degree=2,
                strength=strength,
                via={"id": p1.id, "name": p1.name, "email": p1.email,
                     "title": p1.title, "company": p1.company},
            )
            for p2, p1, strength in found[:limit]
        ]

    def _node(self, key: tuple[str, str], position: int) -> NetworkNode:
        kind, node_id = key
        if kind == "user":
            user = self.users[node_id]
            return NetworkNode(id=user.id, email=user.email, name=user.name, degree=position, kind="user")
        person = self.persons[node_id]
        return NetworkNode(
            id=person.id, email=person.email, name=person.name,
            title=person.title, company=person.company, degree=position,
        )

    async def shortest_knows_path(
        self, owner_id: str, target_id: str, max_hops: int = 4
    ) -> Optional[RawPath]:
        if owner_id not in self.users or target_id not in self.persons:
            return None

        G = self._knows_graph()
        start, goal = ("user", owner_id), ("person", target_id)
        if start not in G or goal not in G:
            return None
        try:
            keys = nx.shortest_path(G, start, goal)
        except nx.NetworkXNoPath:
            return None
        if len(keys) - 1 > max_hops:
            return None

        strengths = [G.edges[a, b]["strength"] for a, b in zip(keys, keys[1:])]
        return RawPath(
            nodes=[self._node(key, position) for position, key in enumerate(keys)],
            edge_strengths=strengths,
        )

    async def network_stats(self, owner_id: str) -> NetworkStats:
        edges = [
            edge for (user_id, person_id), edge in self.knows.items()
            if user_id == owner_id and self.persons.get(person_id, None) is not None
            and self.persons[person_id].owner_id == owner_id
        ]
        if not edges:
            return NetworkStats()

        person_ids = {edge.person_id for edge in edges}
        companies = {cid for pid, cid in self.works_at if pid in person_ids}
        sources: dict[str, int] = {}
        for pid in person_ids:
            for tag in self.persons[pid].source:
                sources[tag] = sources.get(tag, 0) + 1

        return NetworkStats(
            total_contacts=len(person_ids),
            companies=len(companies),
            sources=sources,
            avg_strength=sum(edge.strength for edge in edges) / len(edges),
        )

    async def top_companies(self, owner_id: str, limit: int = 3) -> list[str]:
        counts: dict[str, int] = {}
        for pid, cid in self.works_at:
            person = self.persons.get(pid)
            if person is None or person.owner_id != owner_id or (owner_id, pid) not in self.knows:
                continue
            name = self.companies[cid].name
            counts[name] = counts.get(name, 0) + 1
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [name for name, _ in ranked[:limit]]

    # ----- query plans -----

    def _predicate_matches(
        self, predicate: FilterPredicate, person: Optional[Person], company: Optional[Company]
    ) -> bool:
        if predicate.field == FIELD_NAME:
            haystacks = [person.name, person.first_name, person.last_name]
        elif predicate.field == FIELD_TITLE:
            haystacks = [person.title]
        elif predicate.field == FIELD_COMPANY:
            haystacks = [person.company, company.name if company else None]
        elif predicate.field == FIELD_LOCATION:
            haystacks = [person.location]
        elif predicate.field == FIELD_INDUSTRY:
            haystacks = [company.industry if company else None]
        elif predicate.field == FIELD_COMPANY_NAME:
            haystacks = [company.name if company else None]
        else:
            raise ValueError(f"Unknown filter field: {predicate.field}")

        return any(_contains(h, value) for value in predicate.values for h in haystacks)

    def _sort_rows(self, rows: list[dict[str, Any]], sort: str) -> list[dict[str, Any]]:
        if sort == SORT_RECENCY:
            return sorted(rows, key=lambda r: r.get("last_contact") or _EPOCH, reverse=True)
        return sorted(rows, key=lambda r: r.get("strength") or 0.0, reverse=True)

    @staticmethod
    def _company_info(company: Optional[Company]) -> Optional[dict[str, Any]]:
        if company is None:
            return None
        return {"name": company.name, "domain": company.domain, "industry": company.industry}

    async def execute(self, query: GraphQuery) -> list[dict[str, Any]]:
        if query.query_type == "person_search":
            rows = self._person_search(query)
        elif query.query_type == "company_search":
            rows = self._company_search(query)
        elif query.query_type == "relationship_query":
            rows = self._relationship_query(query)
        elif query.query_type == "general":
            rows = self._general_search(query)
        else:
            raise ValueError(f"Query type cannot be executed directly: {query.query_type}")
        return rows[:query.limit]

    def _person_search(self, query: GraphQuery) -> list[dict[str, Any]]:
        owner_id = query.owner_id
        rows = []

        if query.degree <= 1:
            for (user_id, person_id), edge in self.knows.items():
                person = self.persons.get(person_id)
                if user_id != owner_id or person is None or person.owner_id != owner_id:
                    continue
                company = self._company_of(person.id)
                if all(self._predicate_matches(p, person, company) for p in query.predicates):
                    rows.append(person_row(
                        person, strength=edge.strength, degree=1,
                        last_contact=edge.last_contact,
                    ))
        else:
            for p2, p1, strength in self._beyond_first_degree(owner_id, query.extra_hops):
                company = self._company_of(p2.id)
                if all(self._predicate_matches(p, p2, company) for p in query.predicates):
                    rows.append(person_row(
                        p2, strength=strength, degree=query.degree,
                        via={"id": p1.id, "name": p1.name, "email": p1.email,
                             "title": p1.title, "company": p1.company},
                    ))

        return self._sort_rows(rows, query.sort)

    def _company_search(self, query: GraphQuery) -> list[dict[str, Any]]:
        rows = []
        for company in self.companies.values():
            if not all(self._predicate_matches(p, None, company) for p in query.predicates):
                continue
            contacts = []
            for pid, cid in self.works_at:
                person = self.persons.get(pid)
                if cid != company.id or person is None or person.owner_id != query.owner_id:
                    continue
                edge = self.knows.get((query.owner_id, pid))
                contacts.append({
                    "id": person.id,
                    "email": person.email,
                    "name": person.name,
                    "title": person.title,
                    "strength": edge.strength if edge else None,
                })
            contacts.sort(key=lambda c: c["strength"] or 0.0, reverse=True)
            rows.append({
                "id": company.id,
                "name": company.name,
                "domain": company.domain,
                "industry": company.industry,
                "size": company.size,
                "location": company.location,
                "contacts": contacts,
            })
        rows.sort(key=lambda r: len(r["contacts"]), reverse=True)
        return rows

    def _relationship_query(self, query: GraphQuery) -> list[dict[str, Any]]:
        rows = []
        for (user_id, person_id), edge in self.knows.items():
            person = self.persons.get(person_id)
            if user_id != query.owner_id or person is None or person.owner_id != query.owner_id:
                continue
            if query.min_strength_exclusive is not None and edge.strength <= query.min_strength_exclusive:
                continue
            if query.require_last_contact and edge.last_contact is None:
                continue
            rows.append(person_row(
                person,
                strength=edge.strength,
                last_contact=edge.last_contact,
                interaction_count=edge.interaction_count,
                degree=1,
                company_info=self._company_info(self._company_of(person.id)),
            ))
        return self._sort_rows(rows, query.sort)

    def _general_search(self, query: GraphQuery) -> list[dict[str, Any]]:
        text = (query.search_text or "").strip().lower()
        terms = [t for t in re.split(r'\W+', text) if t]
        if not terms:
            return []

        rows = []
        for person in self._owned(query.owner_id):
            fields = [person.name, person.email, person.title, person.company]
            haystack = " ".join(f.lower() for f in fields if f)
            score = sum(1.0 for term in terms if term in haystack)
            if score == 0:
                continue
            if text in haystack:
                score += 1.0
            edge = self.knows.get((query.owner_id, person.id))
            rows.append(person_row(
                person,
                strength=edge.strength if edge else 0.0,
                degree=1 if edge else 0,
                relevance_score=score,
                company_info=self._company_info(self._company_of(person.id)),
            ))
        rows.sort(key=lambda r: (r["relevance_score"], r["strength"]), reverse=True)
        return rows

    # ----- enrichment -----

    async def list_unenriched(
        self, owner_id: str, limit: int = 50, force_refresh: bool = False
    ) -> list[Person]:
        people = [p for p in self._owned(owner_id) if force_refresh or p.enriched_at is None]
        return people[:limit]

    async def apply_person_enrichment(
        self, owner_id: str, person_id: str, fields: dict[str, Any]
    ) -> list[str]:
        person = await self.get_person(person_id, owner_id)
        if person is None:
            return []

        updated = []
        for name, value in fields.items():
            if value in (None, "") or name not in PERSON_PROFILE_FIELDS:
                continue
            if getattr(person, name):
                continue
            setattr(person, name, value)
            updated.append(name)

        person.enriched_at = _now()
        person.updated_at = person.enriched_at
        return updated

    async def enrich_company(self, name: str, fields: dict[str, Any]) -> list[str]:
        key = self._company_key(name)
        company = next((c for c in self.companies.values() if self._company_key(c.name) == key), None)
        if company is None:
            return []

        updated = []
        for field_name in COMPANY_PROFILE_FIELDS:
            value = fields.get(field_name)
            if value and not getattr(company, field_name):
                setattr(company, field_name, value)
                updated.append(field_name)
        return updated

    async def enrichment_status(self, owner_id: str) -> EnrichmentStatus:
        owned = self._owned(owner_id)
        return EnrichmentStatus(
            total=len(owned),
            enriched=sum(1 for p in owned if p.enriched_at is not None),
        )
