"""Call surface: build a request from options and run it through the pipeline."""

from __future__ import annotations

from typing import Any

from .core.context import Method, RequestContext, ResponseContext, Result
from .core.headers import Headers
from .core.options import get_default_options, resolve_options
from .core.runner import RunnerHooks, StepRunner
from .errors import ReqError
from .steps import default_steps


def build_request(method: Method | str | None = None, url: str | None = None, **options: Any) -> RequestContext:
    """Merge ``options`` over the defaults and lay out the default steps.

    Nothing is sent; the returned context can be inspected, edited and then
    passed to :class:`~pipereq.core.runner.StepRunner`.
    """
    if method is not None:
        options["method"] = method
    if url is not None:
        options["url"] = url
    resolved = resolve_options(options)
    # Call headers extend the process-wide ones instead of replacing them.
    call_headers = Headers(options.get("headers"))
    headers = Headers(get_default_options().get("headers"))
    for name in call_headers:
        headers = headers.remove(name)
    headers = Headers(headers.items() + call_headers.items())
    request_steps, response_steps, error_steps = default_steps(resolved)
    request = RequestContext.build(
        resolved["method"],
        resolved.get("url") or "",
        resolved,
        headers=headers,
        body=resolved.get("body"),
    )
    return request.evolve(
        request_steps=request_steps,
        response_steps=response_steps,
        error_steps=error_steps,
    )


def request(
    method: Method | str | None = None,
    url: str | None = None,
    *,
    hooks: RunnerHooks | None = None,
    **options: Any,
) -> Result:
    """Run one logical request and return its :class:`Result`; never raises :class:`ReqError`."""
    try:
        prepared = build_request(method, url, **options)
    except ReqError as exc:
        return Result(error=exc)
    outcome = StepRunner(hooks=hooks).run(prepared)
    if isinstance(outcome, ReqError):
        return Result(error=outcome)
    return Result(response=outcome)


def request_or_raise(
    method: Method | str | None = None,
    url: str | None = None,
    *,
    hooks: RunnerHooks | None = None,
    **options: Any,
) -> ResponseContext:
    return request(method, url, hooks=hooks, **options).unwrap()


def get(url: str, **options: Any) -> ResponseContext:
    return request_or_raise(Method.GET, url, **options)


def post(url: str, body: Any = None, **options: Any) -> ResponseContext:
    return request_or_raise(Method.POST, url, body=body, **options)


def put(url: str, body: Any = None, **options: Any) -> ResponseContext:
    return request_or_raise(Method.PUT, url, body=body, **options)


def delete(url: str, **options: Any) -> ResponseContext:
    return request_or_raise(Method.DELETE, url, **options)


__all__ = ["build_request", "delete", "get", "post", "put", "request", "request_or_raise"]
