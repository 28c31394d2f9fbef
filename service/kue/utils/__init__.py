from .normalize import (
    normalize_email,
    normalize_linkedin_url,
    normalize_phone,
    is_placeholder_email,
    build_placeholder_email,
    extract_domain,
    company_match_key,
)

__all__ = [
    "normalize_email",
    "normalize_linkedin_url",
    "normalize_phone",
    "is_placeholder_email",
    "build_placeholder_email",
    "extract_domain",
    "company_match_key",
]
