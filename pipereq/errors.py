"""Error taxonomy shared by the pipeline, the steps and the call surface."""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .core.context import RequestContext, ResponseContext


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    DECODE = "decode"
    CONFIG = "config"
    TOO_MANY_REDIRECTS = "too_many_redirects"
    RETRIES_EXHAUSTED = "retries_exhausted"


class ReqError(RuntimeError):
    """Base error; travels through the pipeline as a value and is raised by ``*_or_raise``."""

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        request: RequestContext | None = None,
        response: ResponseContext | None = None,
        details: Mapping[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.response = response
        self.details = dict(details or {})
        self.cause = cause

    def with_context(
        self,
        *,
        request: RequestContext | None = None,
        response: ResponseContext | None = None,
    ) -> "ReqError":
        """Attach the exchange the error belongs to, keeping what is already set."""
        if self.request is None and request is not None:
            self.request = request
        if self.response is None and response is not None:
            self.response = response
        return self

    def __str__(self) -> str:
        base = super().__str__()
        if not self.details:
            return base
        try:
            detail_repr = json.dumps(self.details, ensure_ascii=False, default=str)
        except TypeError:
            detail_repr = str(self.details)
        return f"{base} | details: {detail_repr}"


class TransportError(ReqError):
    """Connection, DNS or timeout failure reported by an adapter."""

    kind = ErrorKind.TRANSPORT


class HTTPStatusError(ReqError):
    """A response status the caller asked to treat as an error."""

    kind = ErrorKind.HTTP_STATUS


class DecodeError(ReqError):
    """Response body does not match its declared encoding or content type."""

    kind = ErrorKind.DECODE


class ConfigError(ReqError):
    """Malformed option such as auth credentials, netrc file or range."""

    kind = ErrorKind.CONFIG


class RedirectsExhaustedError(ReqError):
    kind = ErrorKind.TOO_MANY_REDIRECTS


class RetriesExhaustedError(ReqError):
    kind = ErrorKind.RETRIES_EXHAUSTED


__all__ = [
    "ErrorKind",
    "ReqError",
    "TransportError",
    "HTTPStatusError",
    "DecodeError",
    "ConfigError",
    "RedirectsExhaustedError",
    "RetriesExhaustedError",
]
