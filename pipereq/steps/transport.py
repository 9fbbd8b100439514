"""The request phase's last step: hand the request to an adapter."""

from __future__ import annotations

from ..adapters import get_adapter, pool_options
from ..core.context import RequestContext, ResponseContext
from ..core.step import Halt
from ..errors import ConfigError, ReqError, TransportError
from ..utils.logging import get_logger
from .request import is_absolute_url

LOGGER = get_logger(__name__)


def run_adapter(request: RequestContext) -> Halt:
    """Perform the exchange; native adapter failures become :class:`TransportError`."""
    if not is_absolute_url(request.url):
        return Halt(
            ConfigError(
                "Request URL must be absolute (set base_url for relative paths)",
                request=request,
                details={"url": request.url},
            )
        )
    try:
        adapter = get_adapter(request.options.get("adapter"))
    except ConfigError as exc:
        return Halt(exc.with_context(request=request))

    try:
        response = adapter.perform(request, pool_options(request.options))
    except ReqError as exc:
        if isinstance(exc, TransportError):
            _log_failure(request, adapter.name, exc)
        return Halt(exc.with_context(request=request))
    except adapter.transport_exceptions as exc:
        error = TransportError(
            f"{type(exc).__name__}: {exc}",
            request=request,
            details={"adapter": adapter.name, "url": request.url},
            cause=exc,
        )
        _log_failure(request, adapter.name, error)
        return Halt(error)

    if not isinstance(response, ResponseContext):
        raise TypeError(f"Adapter {adapter.name!r} returned {type(response).__name__}")
    return Halt(response)


def _log_failure(request: RequestContext, adapter: str, error: TransportError) -> None:
    LOGGER.warning(
        "Transport failure",
        extra={
            "event": "transport.error",
            "adapter": adapter,
            "method": request.method.value,
            "url": request.url,
            "error": str(error),
        },
    )


__all__ = ["run_adapter"]
