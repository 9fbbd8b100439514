"""Retry step shared by the response and error phases."""

from __future__ import annotations

import time
from email.utils import parsedate_to_datetime
from typing import Any

from ..core.backoff import Backoff
from ..core.context import RequestContext, ResponseContext
from ..core.step import Halt, Restart
from ..errors import ReqError, RetriesExhaustedError, TransportError
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_RETRY_STATUSES = frozenset({408, 429, *range(500, 600)})

_BACKOFF = Backoff()


def _is_retryable(request: RequestContext, payload: ResponseContext | ReqError) -> bool:
    if isinstance(payload, ResponseContext):
        statuses = request.options.get("retry_statuses") or DEFAULT_RETRY_STATUSES
        return payload.status in statuses and not payload.get_private("cache")
    return isinstance(payload, TransportError)


def _retry_after_ms(response: ResponseContext | None) -> float | None:
    if response is None:
        return None
    value = response.header("retry-after")
    if not value:
        return None
    try:
        return max(float(value), 0.0) * 1000.0
    except ValueError:
        pass
    try:
        moment = parsedate_to_datetime(value).timestamp()
    except (TypeError, ValueError, IndexError):
        return None
    return max(moment - time.time(), 0.0) * 1000.0


def retry_delay(request: RequestContext, payload: ResponseContext | ReqError, retry_count: int) -> float:
    """Milliseconds to wait before retry number ``retry_count`` (0-based)."""
    option: Any = request.options.get("retry_delay")
    if isinstance(option, Backoff):
        return option.compute_delay(retry_count)
    if callable(option):
        return float(option(retry_count))
    if option is not None:
        return float(option)
    response = payload if isinstance(payload, ResponseContext) else payload.response
    return _BACKOFF.compute_delay(retry_count, retry_after=_retry_after_ms(response))


def retry(
    request: RequestContext, payload: ResponseContext | ReqError
) -> ResponseContext | ReqError | Halt | Restart:
    """Re-run the exchange on transport errors and retryable statuses.

    ``max_retries`` bounds the re-runs; ``0`` disables the step. Once the
    budget is spent the exchange halts with :class:`RetriesExhaustedError`.
    """
    if not _is_retryable(request, payload):
        return payload
    max_retries = int(request.options.get("max_retries") or 0)
    if max_retries <= 0:
        return payload

    retry_count = int(request.get_private("retry_count", 0))
    if retry_count >= max_retries:
        response = payload if isinstance(payload, ResponseContext) else payload.response
        cause = payload if isinstance(payload, ReqError) else None
        LOGGER.warning(
            "Retries exhausted",
            extra={"event": "retry.exhausted", "url": request.url, "attempts": retry_count + 1},
        )
        return Halt(
            RetriesExhaustedError(
                f"Giving up after {retry_count + 1} attempts",
                request=request,
                response=response,
                details={
                    "attempts": retry_count + 1,
                    "max_retries": max_retries,
                    "last": str(cause) if cause else response.status if response else None,
                },
                cause=cause,
            )
        )

    delay = retry_delay(request, payload, retry_count)
    LOGGER.warning(
        "Retrying request",
        extra={
            "event": "retry",
            "url": request.url,
            "retry": retry_count + 1,
            "max_retries": max_retries,
            "delay_ms": round(delay, 1),
            "reason": payload.status if isinstance(payload, ResponseContext) else str(payload),
        },
    )
    _BACKOFF.sleep(delay)
    return Restart(request.put_private("retry_count", retry_count + 1))


__all__ = ["DEFAULT_RETRY_STATUSES", "retry", "retry_delay"]
