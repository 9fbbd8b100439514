"""Option defaults and merging.

Resolution order, lowest precedence first: the built-in defaults below, the
process-wide defaults installed with :func:`set_default_options`, and the
options passed to a call.

Process-wide defaults are global for the lifetime of the process. Set them
once at application start-up; library code must not touch them.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

BUILTIN_DEFAULTS: Mapping[str, Any] = MappingProxyType(
    {
        "method": "GET",
        "raw": False,
        "location_trusted": False,
        "max_redirects": 50,
        "max_retries": 2,
        "cache": False,
        "pool_timeout": 5000,
        "receive_timeout": 15000,
        "adapter": "urllib",
        "http_errors": False,
    }
)

KNOWN_OPTIONS = frozenset(
    {
        "method",
        "url",
        "base_url",
        "params",
        "headers",
        "auth",
        "netrc",
        "range",
        "body",
        "raw",
        "location_trusted",
        "max_redirects",
        "retry_delay",
        "max_retries",
        "retry_statuses",
        "cache",
        "cache_dir",
        "cache_store",
        "adapter",
        "pool_timeout",
        "receive_timeout",
        "timeout",
        "user_agent",
        "http_errors",
        "steps",
    }
)

_default_options: dict[str, Any] = {}


def get_default_options() -> dict[str, Any]:
    """Return a copy of the process-wide default options."""
    return dict(_default_options)


def set_default_options(options: Mapping[str, Any]) -> None:
    """Replace the process-wide default options."""
    global _default_options
    _default_options = dict(options)


def reset_default_options() -> None:
    set_default_options({})


def resolve_options(options: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    """Merge call options over the process-wide and built-in defaults.

    Call options set to ``None`` count as omitted.
    """
    merged: dict[str, Any] = dict(BUILTIN_DEFAULTS)
    merged.update(_default_options)
    for key, value in (options or {}).items():
        if value is not None:
            merged[key] = value
    return MappingProxyType(merged)


__all__ = [
    "BUILTIN_DEFAULTS",
    "KNOWN_OPTIONS",
    "get_default_options",
    "set_default_options",
    "reset_default_options",
    "resolve_options",
]
