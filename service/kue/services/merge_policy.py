"""
Field Merge Policy

Contact merge behaviour as data: a list of (field, rule) pairs applied
uniformly by merge_records().
"""

from enum import Enum
from typing import Any

from ..schemas import Contact


class MergeRule(str, Enum):
    PREFER_INCOMING = "prefer_incoming"   # non-empty incoming value wins
    PREFER_EXISTING = "prefer_existing"   # non-empty existing value wins
    UNION_SET = "union_set"               # ordered union of list values


MergePolicy = list[tuple[str, MergeRule]]

PROFILE_FIELDS = ("name", "first_name", "last_name", "phone", "company", "title", "linkedin_url")

# Collapsing records that share an email inside one batch
BATCH_MERGE_POLICY: MergePolicy = [
    ("email", MergeRule.PREFER_EXISTING),
    *[(name, MergeRule.PREFER_INCOMING) for name in PROFILE_FIELDS],
    ("source", MergeRule.PREFER_EXISTING),
]

# Incoming contact matched to a stored Person: the stored email is kept and
# the incoming source is passed on so the graph upsert records provenance
CONTACT_MERGE_POLICY: MergePolicy = [
    ("email", MergeRule.PREFER_EXISTING),
    *[(name, MergeRule.PREFER_INCOMING) for name in PROFILE_FIELDS],
    ("source", MergeRule.PREFER_INCOMING),
]


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def apply_rule(rule: MergeRule, existing: Any, incoming: Any) -> Any:
    if rule == MergeRule.PREFER_INCOMING:
        return existing if _is_empty(incoming) else incoming
    if rule == MergeRule.PREFER_EXISTING:
        return incoming if _is_empty(existing) else existing
    if rule == MergeRule.UNION_SET:
        merged = []
        for value in list(existing or []) + list(incoming or []):
            if value not in merged:
                merged.append(value)
        return merged
    raise ValueError(f"Unknown merge rule: {rule}")


def merge_records(existing: dict[str, Any], incoming: dict[str, Any], policy: MergePolicy) -> dict[str, Any]:
    """Apply policy field by field. Fields outside the policy keep the existing value."""
    merged = dict(existing)
    for field, rule in policy:
        merged[field] = apply_rule(rule, existing.get(field), incoming.get(field))
    return merged


def merge_contacts(existing: Contact, incoming: Contact, policy: MergePolicy = CONTACT_MERGE_POLICY) -> Contact:
    merged = merge_records(existing.model_dump(), incoming.model_dump(), policy)
    return Contact(**merged)
