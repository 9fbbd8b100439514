"""Pipeline primitives: contexts, steps and the runner."""

from .backoff import Backoff
from .context import Method, RequestContext, ResponseContext, Result
from .headers import Headers
from .options import (
    get_default_options,
    reset_default_options,
    resolve_options,
    set_default_options,
)
from .runner import RunnerHooks, StepRunner
from .step import Continue, Halt, Phase, Restart, Step, StepKind

__all__ = [
    "Backoff",
    "Continue",
    "Halt",
    "Headers",
    "Method",
    "Phase",
    "RequestContext",
    "ResponseContext",
    "Restart",
    "Result",
    "RunnerHooks",
    "Step",
    "StepKind",
    "StepRunner",
    "get_default_options",
    "reset_default_options",
    "resolve_options",
    "set_default_options",
]
