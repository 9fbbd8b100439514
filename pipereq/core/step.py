"""Step descriptors and the values step handlers hand back to the runner."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Union

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..errors import ReqError
    from .context import RequestContext, ResponseContext


class Phase(str, Enum):
    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"


class StepKind(str, Enum):
    """Closed set of built-in steps; anything user supplied is ``CUSTOM``."""

    PUT_DEFAULT_HEADERS = "put_default_headers"
    PUT_BASE_URL = "put_base_url"
    PUT_PARAMS = "put_params"
    AUTH = "auth"
    LOAD_NETRC = "load_netrc"
    PUT_RANGE = "put_range"
    ENCODE_HEADERS = "encode_headers"
    ENCODE_BODY = "encode_body"
    PUT_IF_MODIFIED_SINCE = "put_if_modified_since"
    RUN_ADAPTER = "run_adapter"
    RETRY = "retry"
    HANDLE_CACHE = "handle_cache"
    SERVE_STALE_ON_ERROR = "serve_stale_on_error"
    FOLLOW_REDIRECTS = "follow_redirects"
    DECOMPRESS_BODY = "decompress_body"
    DECODE_BODY = "decode_body"
    HANDLE_HTTP_ERRORS = "handle_http_errors"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class Step:
    """A named handler.

    Request-phase handlers take ``(request)``; response- and error-phase
    handlers take ``(request, payload)``. Handlers return the next payload,
    or one of :class:`Continue`, :class:`Halt` or :class:`Restart`.
    """

    name: str
    handler: Callable[..., Any]
    kind: StepKind = StepKind.CUSTOM

    @classmethod
    def builtin(cls, kind: StepKind, handler: Callable[..., Any]) -> "Step":
        return cls(name=kind.value, handler=handler, kind=kind)

    @classmethod
    def custom(cls, name: str, handler: Callable[..., Any]) -> "Step":
        return cls(name=name, handler=handler, kind=StepKind.CUSTOM)

    def __call__(self, *args: Any) -> Any:
        return self.handler(*args)


Payload = Union["RequestContext", "ResponseContext", "ReqError"]


@dataclass(frozen=True, slots=True)
class Continue:
    """Carry on with ``payload``; ``request`` replaces the exchange's request when given."""

    payload: Payload
    request: RequestContext | None = None


@dataclass(frozen=True, slots=True)
class Halt:
    """Stop the current phase.

    In the request phase a halted request goes straight to transport, and a
    halted response or error moves on to the matching phase. In the response
    and error phases the payload is final.
    """

    payload: Payload
    request: RequestContext | None = None


@dataclass(frozen=True, slots=True)
class Restart:
    """Run the whole pipeline again from the request phase with ``request``."""

    request: RequestContext


StepResult = Union[Continue, Halt, Restart]


__all__ = [
    "Phase",
    "StepKind",
    "Step",
    "Payload",
    "Continue",
    "Halt",
    "Restart",
    "StepResult",
]
