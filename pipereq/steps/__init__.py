"""Built-in steps and the default pipeline layout."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..core.step import Phase, Step, StepKind
from ..errors import ConfigError
from .cache import handle_cache, put_if_modified_since, serve_stale_on_error
from .redirects import follow_redirects
from .request import (
    auth,
    encode_body,
    encode_headers,
    load_netrc,
    put_base_url,
    put_default_headers,
    put_params,
    put_range,
)
from .response import decode_body, decompress_body, handle_http_errors
from .retry import retry
from .transport import run_adapter

BUILTIN_STEPS: dict[StepKind, Step] = {
    kind: Step.builtin(kind, handler)
    for kind, handler in (
        (StepKind.PUT_DEFAULT_HEADERS, put_default_headers),
        (StepKind.PUT_BASE_URL, put_base_url),
        (StepKind.PUT_PARAMS, put_params),
        (StepKind.AUTH, auth),
        (StepKind.LOAD_NETRC, load_netrc),
        (StepKind.PUT_RANGE, put_range),
        (StepKind.ENCODE_HEADERS, encode_headers),
        (StepKind.ENCODE_BODY, encode_body),
        (StepKind.PUT_IF_MODIFIED_SINCE, put_if_modified_since),
        (StepKind.RUN_ADAPTER, run_adapter),
        (StepKind.RETRY, retry),
        (StepKind.HANDLE_CACHE, handle_cache),
        (StepKind.SERVE_STALE_ON_ERROR, serve_stale_on_error),
        (StepKind.FOLLOW_REDIRECTS, follow_redirects),
        (StepKind.DECOMPRESS_BODY, decompress_body),
        (StepKind.DECODE_BODY, decode_body),
        (StepKind.HANDLE_HTTP_ERRORS, handle_http_errors),
    )
}


def _extra_steps(spec: Iterable[Any] | None) -> dict[Phase, list[Step]]:
    extras: dict[Phase, list[Step]] = {phase: [] for phase in Phase}
    for entry in spec or ():
        try:
            phase_name, step = entry
            phase = Phase(phase_name)
        except (TypeError, ValueError) as exc:
            raise ConfigError(
                "Extra steps must be (phase, Step) pairs", details={"entry": repr(entry)}
            ) from exc
        if not isinstance(step, Step):
            raise ConfigError("Extra step is not a Step", details={"entry": repr(entry)})
        extras[phase].append(step)
    return extras


def default_steps(
    options: Mapping[str, Any],
) -> tuple[tuple[Step, ...], tuple[Step, ...], tuple[Step, ...]]:
    """Request, response and error steps for a call with ``options``."""
    caching = bool(options.get("cache"))
    retrying = int(options.get("max_retries") or 0) > 0
    raw = bool(options.get("raw"))
    extras = _extra_steps(options.get("steps"))

    request_kinds = [
        StepKind.PUT_DEFAULT_HEADERS,
        StepKind.PUT_BASE_URL,
        StepKind.PUT_PARAMS,
        StepKind.AUTH,
        StepKind.LOAD_NETRC,
        StepKind.PUT_RANGE,
        StepKind.ENCODE_HEADERS,
        StepKind.ENCODE_BODY,
    ]
    if caching:
        request_kinds.append(StepKind.PUT_IF_MODIFIED_SINCE)

    response_kinds: list[StepKind] = []
    if retrying:
        response_kinds.append(StepKind.RETRY)
    if caching:
        response_kinds.append(StepKind.HANDLE_CACHE)
    response_kinds.append(StepKind.FOLLOW_REDIRECTS)
    if not raw:
        response_kinds.extend((StepKind.DECOMPRESS_BODY, StepKind.DECODE_BODY))
    if options.get("http_errors"):
        response_kinds.append(StepKind.HANDLE_HTTP_ERRORS)

    error_kinds: list[StepKind] = []
    if caching:
        error_kinds.append(StepKind.SERVE_STALE_ON_ERROR)
    if retrying:
        error_kinds.append(StepKind.RETRY)

    request_steps = [BUILTIN_STEPS[kind] for kind in request_kinds]
    request_steps.extend(extras[Phase.REQUEST])
    request_steps.append(BUILTIN_STEPS[StepKind.RUN_ADAPTER])
    response_steps = [BUILTIN_STEPS[kind] for kind in response_kinds] + extras[Phase.RESPONSE]
    error_steps = [BUILTIN_STEPS[kind] for kind in error_kinds] + extras[Phase.ERROR]
    return tuple(request_steps), tuple(response_steps), tuple(error_steps)


__all__ = ["BUILTIN_STEPS", "default_steps"]
