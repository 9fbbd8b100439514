"""Transport adapter contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from ..core.context import RequestContext, ResponseContext
from ..errors import ConfigError

POOL_OPTION_KEYS = ("pool_timeout", "receive_timeout", "timeout")


class Adapter(ABC):
    """Performs the wire I/O for a finished request.

    ``perform`` returns a :class:`ResponseContext` for any HTTP status
    (redirects included, they are the pipeline's business) and raises either
    :class:`~pipereq.errors.TransportError` or one of ``transport_exceptions``
    when no response could be obtained.
    """

    name: str = "base"
    transport_exceptions: tuple[type[BaseException], ...] = (OSError,)

    @abstractmethod
    def perform(self, request: RequestContext, pool_opts: Mapping[str, Any]) -> ResponseContext:
        """Send ``request`` and return the raw response."""

    def close(self) -> None:
        """Release pooled resources."""


def pool_options(options: Mapping[str, Any]) -> dict[str, Any]:
    return {key: options[key] for key in POOL_OPTION_KEYS if options.get(key) is not None}


def timeout_seconds(pool_opts: Mapping[str, Any], key: str = "receive_timeout") -> float | None:
    """Convert a millisecond timeout to seconds; an explicit ``timeout`` wins."""
    value = pool_opts.get("timeout", pool_opts.get(key))
    if value is None:
        return None
    return float(value) / 1000.0


def wire_body(request: RequestContext) -> bytes | None:
    body = request.body
    if body is None or isinstance(body, bytes):
        return body
    if isinstance(body, bytearray):
        return bytes(body)
    raise ConfigError(
        "Request body must be encoded to bytes before transport",
        details={"body_type": type(body).__name__},
    )


def wire_headers(request: RequestContext) -> dict[str, str]:
    return {name: str(value) for name, value in request.headers.as_dict().items()}


__all__ = [
    "Adapter",
    "POOL_OPTION_KEYS",
    "pool_options",
    "timeout_seconds",
    "wire_body",
    "wire_headers",
]
