"""Domain normalization — consistent storage keys for plans."""

from __future__ import annotations

import re

_PROTOCOL_RE = re.compile(r"^https?://", re.IGNORECASE)
_PATH_RE = re.compile(r"[/?#].*$")
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)


def normalize_domain(domain: str | None) -> str:
    """``HTTPS://WWW.Example.com/path?q=1`` -> ``example.com``."""
    if not domain:
        return ""
    normalized = domain.strip()
    normalized = _PROTOCOL_RE.sub("", normalized)
    normalized = _PATH_RE.sub("", normalized)
    normalized = _WWW_RE.sub("", normalized)
    return normalized.lower().strip()


def is_domain_likely_valid(domain: str | None) -> bool:
    normalized = normalize_domain(domain)
    return len(normalized) >= 4 and "." in normalized


def extract_company_name_from_domain(domain: str | None) -> str:
    name = normalize_domain(domain).split(".")[0]
    if not name:
        return "Unknown Company"
    return name[0].upper() + name[1:]
