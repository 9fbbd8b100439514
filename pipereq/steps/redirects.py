"""Redirect following."""

from __future__ import annotations

import urllib.parse

from ..core.context import Method, RequestContext, ResponseContext
from ..core.step import Halt, Restart, StepKind
from ..errors import RedirectsExhaustedError
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

# Validators belong to the original resource; Content-* to the dropped body.
_CONDITIONAL_HEADERS = ("If-None-Match", "If-Modified-Since")
_BODY_HEADERS = ("Content-Type", "Content-Length")


def _host(url: str) -> str | None:
    return urllib.parse.urlsplit(url).hostname


def redirect_method(status: int, method: Method) -> tuple[Method, bool]:
    """Method for the follow-up request and whether the body is kept."""
    if status == 303:
        return (Method.HEAD if method is Method.HEAD else Method.GET), False
    if status in (301, 302) and method is Method.POST:
        return Method.GET, False
    return method, True


def follow_redirects(
    request: RequestContext, response: ResponseContext
) -> ResponseContext | Halt | Restart:
    if response.status not in REDIRECT_STATUSES:
        return response
    location = response.header("location")
    if not location:
        return response
    max_redirects = int(request.options.get("max_redirects") or 0)
    if max_redirects <= 0:
        return response

    redirect_count = int(request.get_private("redirect_count", 0))
    if redirect_count >= max_redirects:
        return Halt(
            RedirectsExhaustedError(
                f"Too many redirects (max {max_redirects})",
                request=request,
                response=response,
                details={"max_redirects": max_redirects, "location": location},
            )
        )

    target = urllib.parse.urljoin(request.url, location.strip())
    method, keep_body = redirect_method(response.status, request.method)

    headers = request.headers
    for name in _CONDITIONAL_HEADERS:
        headers = headers.remove(name)
    body = request.body
    if not keep_body:
        body = None
        for name in _BODY_HEADERS:
            headers = headers.remove(name)

    follow = request.evolve(url=target, method=method, headers=headers, body=body)
    cross_host = _host(target) != _host(request.url)
    if cross_host and not request.options.get("location_trusted"):
        follow = (
            follow.without_header("Authorization")
            .remove_step(StepKind.AUTH.value)
            .remove_step(StepKind.LOAD_NETRC.value)
        )

    LOGGER.info(
        "Following redirect",
        extra={
            "event": "redirect",
            "status": response.status,
            "from": request.url,
            "to": target,
            "method": method.value,
            "redirect": redirect_count + 1,
        },
    )
    return Restart(follow.put_private("redirect_count", redirect_count + 1))


__all__ = ["REDIRECT_STATUSES", "follow_redirects", "redirect_method"]
