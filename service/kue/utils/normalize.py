"""
Identifier normalization utilities.

Ensures consistent format for emails, LinkedIn URLs, phones and company
names across mail, contacts, calendar and CSV sources.
"""

import re
from typing import Optional
from urllib.parse import urlparse


# Personal mailbox providers: their domain says nothing about the employer
FREE_EMAIL_PROVIDERS = {
    'gmail.com', 'googlemail.com', 'yahoo.com', 'hotmail.com', 'outlook.com',
    'aol.com', 'icloud.com', 'mail.com', 'protonmail.com', 'live.com',
    'msn.com', 'ymail.com', 'me.com',
}

# Legal-entity suffixes dropped in 'normalized' company matching
COMPANY_SUFFIXES = {
    'inc', 'incorporated', 'llc', 'ltd', 'limited', 'corp', 'corporation',
    'co', 'company', 'gmbh', 'plc', 'sa', 'ag', 'bv', 'oy',
}

COMPANY_MATCH_EXACT = "exact"
COMPANY_MATCH_NORMALIZED = "normalized"


def normalize_email(value: Optional[str]) -> str:
    """Lower-case and trim an email for use as an identity key."""
    if not value:
        return ""
    return value.strip().lower()


def build_placeholder_email(first_name: str, last_name: Optional[str], domain: str) -> str:
    """
    Synthesize 'firstname.lastname@<domain>' for contacts exported without
    an email (LinkedIn CSV connections).
    """
    parts = [p for p in (first_name, last_name) if p]
    local = ".".join(re.sub(r'[^a-z0-9]', '', p.lower()) for p in parts)
    return f"{local}@{domain}"


def is_placeholder_email(email: str, placeholder_domain: str) -> bool:
    return normalize_email(email).endswith("@" + placeholder_domain.lower())


def extract_domain(email: str, placeholder_domain: Optional[str] = None) -> Optional[str]:
    """
    Company domain from an email address.

    Returns None for personal mailbox providers and placeholder emails.
    """
    parts = normalize_email(email).split("@")
    if len(parts) != 2 or not parts[1]:
        return None

    domain = parts[1]
    if domain in FREE_EMAIL_PROVIDERS:
        return None
    if placeholder_domain and domain == placeholder_domain.lower():
        return None

    return domain


def company_match_key(name: Optional[str], mode: str = COMPANY_MATCH_EXACT) -> Optional[str]:
    """
    Key used to compare company names.

    'exact': case-insensitive only, so "Google" and "Google Inc." differ.
    'normalized': punctuation and trailing legal suffixes are dropped.
    """
    if not name:
        return None

    if mode != COMPANY_MATCH_NORMALIZED:
        return name.lower()

    words = re.sub(r'[^\w\s]', ' ', name.lower()).split()
    while len(words) > 1 and words[-1] in COMPANY_SUFFIXES:
        words.pop()
    return " ".join(words) or None


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Keep digits and '+' only."""
    if not value:
        return None
    normalized = ''.join(c for c in value if c.isdigit() or c == '+')
    return normalized or None


def normalize_linkedin_url(value: str) -> Optional[str]:
    """
    Normalize LinkedIn URL to consistent format.

    Input formats handled:
    - "https://www.linkedin.com/in/username"
    - "linkedin.com/in/username"
    - "/in/username"
    - "username" (just the username)

    Output format: "linkedin.com/in/username" (no protocol, no www)

    Returns None if the value doesn't look like a valid LinkedIn profile.
    """
    if not value or not isinstance(value, str):
        return None

    value = value.strip()

    # Search URLs are not profiles
    if "/search/" in value or "keywords=" in value:
        return None

    username = None

    if "linkedin.com" in value.lower() or value.startswith("http"):
        if not value.startswith("http"):
            value = "https://" + value

        match = re.search(r'/in/([^/?#]+)', urlparse(value).path)
        if match:
            username = match.group(1)
    elif value.startswith("/in/"):
        username = value[4:].split("/")[0].split("?")[0]
    elif "/" not in value and "@" not in value:
        username = value

    if not username:
        return None

    username = username.strip().lower()

    if not re.match(r'^[a-z0-9-]+$', username):
        return None

    return f"linkedin.com/in/{username}"
