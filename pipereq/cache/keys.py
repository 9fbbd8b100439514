"""Cache key derivation."""

from __future__ import annotations

import hashlib
import urllib.parse

from ..core.context import RequestContext

KEY_HEADERS = ("accept", "accept-language", "range")

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str) -> str:
    """Lower-case scheme and host, drop default ports and the fragment."""
    parts = urllib.parse.urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if parts.port is not None and parts.port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{parts.port}"
    if parts.username:
        netloc = f"{parts.username}@{netloc}"
    path = parts.path or "/"
    return urllib.parse.urlunsplit((scheme, netloc, path, parts.query, ""))


def cache_key(request: RequestContext) -> str:
    lines = [request.method.value, normalize_url(request.url)]
    for name in KEY_HEADERS:
        values = request.headers.get_all(name)
        if values:
            lines.append(f"{name}:{','.join(str(v) for v in values)}")
    return hashlib.sha256("\n".join(lines).encode("utf-8")).hexdigest()


__all__ = ["KEY_HEADERS", "cache_key", "normalize_url"]
