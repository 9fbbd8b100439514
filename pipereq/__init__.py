"""HTTP client built around a pipeline of request, response and error steps."""

from ._version import __version__
from .api import build_request, delete, get, post, put, request, request_or_raise
from .core import (
    Continue,
    Halt,
    Headers,
    Method,
    Phase,
    RequestContext,
    ResponseContext,
    Restart,
    Result,
    RunnerHooks,
    Step,
    StepKind,
    StepRunner,
    get_default_options,
    reset_default_options,
    set_default_options,
)
from .errors import (
    ConfigError,
    DecodeError,
    ErrorKind,
    HTTPStatusError,
    RedirectsExhaustedError,
    ReqError,
    RetriesExhaustedError,
    TransportError,
)

__all__ = [
    "ConfigError",
    "Continue",
    "DecodeError",
    "ErrorKind",
    "HTTPStatusError",
    "Halt",
    "Headers",
    "Method",
    "Phase",
    "RedirectsExhaustedError",
    "ReqError",
    "RequestContext",
    "ResponseContext",
    "Restart",
    "Result",
    "RetriesExhaustedError",
    "RunnerHooks",
    "Step",
    "StepKind",
    "StepRunner",
    "TransportError",
    "__version__",
    "build_request",
    "delete",
    "get",
    "get_default_options",
    "post",
    "put",
    "request",
    "request_or_raise",
    "reset_default_options",
    "set_default_options",
]
