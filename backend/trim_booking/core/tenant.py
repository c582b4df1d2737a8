# backend/trim_booking/core/tenant.py
"""
Tenant identity and slug extraction.

A request names its business in one of three places, checked in order:
the Host subdomain, the tenant header, and the tenant query parameter.
The first non-empty value wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True, slots=True)
class TenantContext:
    """Resolved tenant for one request; passed explicitly to every service call."""

    business_id: str
    slug: str
    timezone: str


def extract_subdomain(host: Optional[str], ignored: Iterable[str] = ()) -> Optional[str]:
    """
    Return the business slug encoded in the Host header, if any.

    "v7.localhost:3000" -> "v7", "shop2.trim.com" -> "shop2",
    "localhost" / "www.trim.com" -> None.
    """
    if not host:
        return None
    hostname = host.strip().split(":", 1)[0]
    parts = hostname.split(".")
    if len(parts) < 2:
        return None
    subdomain = parts[0].strip().lower()
    if not subdomain or subdomain in set(ignored):
        return None
    return subdomain


def resolve_tenant_slug(
    host: Optional[str],
    header_value: Optional[str],
    query_value: Optional[str],
    ignored_subdomains: Iterable[str] = (),
) -> Optional[str]:
    """Apply the resolution order and return the first non-empty slug."""
    slug = extract_subdomain(host, ignored_subdomains)
    if slug:
        return slug
    for candidate in (header_value, query_value):
        if candidate and candidate.strip():
            return candidate.strip().lower()
    return None


def is_tenant_agnostic(path: str, agnostic_paths: Iterable[str]) -> bool:
    """True when the path is exempt from tenant resolution."""
    for allowed in agnostic_paths:
        if path == allowed or path.startswith(allowed.rstrip("/") + "/"):
            return True
    return False
