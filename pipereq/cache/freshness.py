"""Freshness rules for stored responses (RFC 9111, private cache)."""

from __future__ import annotations

import time
from email.utils import parsedate_to_datetime

from ..core.context import ResponseContext
from ..core.headers import Headers

STORED_AT = "cache_stored_at"

# Headers a 304 must not overwrite on the stored response.
_NOT_REFRESHED = {"content-encoding", "content-length", "content-type", "transfer-encoding"}


def parse_cache_control(value: str | None) -> dict[str, str | None]:
    directives: dict[str, str | None] = {}
    if not value:
        return directives
    for part in str(value).split(","):
        part = part.strip()
        if not part:
            continue
        name, sep, arg = part.partition("=")
        directives[name.strip().lower()] = arg.strip().strip('"') if sep else None
    return directives


def _parse_seconds(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return max(int(value), 0)
    except ValueError:
        return None


def _parse_http_date(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(str(value)).timestamp()
    except (TypeError, ValueError, IndexError):
        return None


def freshness_lifetime(headers: Headers) -> int | None:
    """Seconds the response stays fresh, ``None`` when nothing says."""
    directives = parse_cache_control(headers.get("cache-control"))
    if "no-cache" in directives or "no-store" in directives:
        return 0
    max_age = _parse_seconds(directives.get("max-age"))
    if max_age is not None:
        return max_age
    expires = _parse_http_date(headers.get("expires"))
    if expires is not None:
        date = _parse_http_date(headers.get("date"))
        if date is None:
            return 0
        return max(int(expires - date), 0)
    return None


def is_storable(response: ResponseContext) -> bool:
    directives = parse_cache_control(response.headers.get("cache-control"))
    return "no-store" not in directives


def is_fresh(response: ResponseContext, *, now: float | None = None) -> bool:
    lifetime = freshness_lifetime(response.headers)
    if not lifetime:
        return False
    stored_at = response.get_private(STORED_AT)
    if stored_at is None:
        return False
    current = time.time() if now is None else now
    age = max(current - float(stored_at), 0.0)
    age += _parse_seconds(response.headers.get("age")) or 0
    return age < lifetime


def refresh_headers(stored: ResponseContext, not_modified: ResponseContext) -> ResponseContext:
    """Fold the validator and freshness headers of a 304 into the stored response."""
    headers = stored.headers
    for name, value in not_modified.headers.items():
        if name.lower() in _NOT_REFRESHED:
            continue
        headers = headers.set(name, value)
    return stored.evolve(headers=headers)


__all__ = [
    "STORED_AT",
    "freshness_lifetime",
    "is_fresh",
    "is_storable",
    "parse_cache_control",
    "refresh_headers",
]
