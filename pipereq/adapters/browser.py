"""Headless-browser transport for pages that refuse plain HTTP clients."""

from __future__ import annotations

import time
from typing import Any, Mapping

from ..core.context import Method, RequestContext, ResponseContext
from ..core.headers import Headers
from ..errors import ConfigError, TransportError
from ..utils.logging import get_logger
from .base import Adapter, timeout_seconds, wire_headers

_LOGGER = get_logger(__name__)

# Headers Chromium manages itself or that would conflict with the rendered content.
_BROWSER_HEADER_SKIP = {
    "cookie",
    "user-agent",
    "accept-encoding",
    "content-length",
    "connection",
    "host",
}
_RENDERED_HEADER_DROP = {"content-encoding", "content-length", "transfer-encoding"}


class BrowserAdapter(Adapter):
    """Loads the URL in headless Chromium through Playwright.

    Only GET is supported. The browser follows redirects on its own, so the
    returned response is the final page and its body is the rendered HTML.
    """

    name = "browser"

    def __init__(self, *, wait_until: str = "networkidle") -> None:
        self._wait_until = wait_until

    def perform(self, request: RequestContext, pool_opts: Mapping[str, Any]) -> ResponseContext:
        if request.method is not Method.GET:
            raise ConfigError(
                "Browser transport only supports GET",
                details={"method": request.method.value},
            )
        try:
            from playwright.sync_api import Error as PlaywrightError, sync_playwright
        except ModuleNotFoundError as exc:
            raise ConfigError("Playwright is required for browser transport") from exc

        headers = {key.lower(): value for key, value in wire_headers(request).items()}
        timeout = timeout_seconds(pool_opts) or 15.0
        start_time = time.monotonic()

        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(
                    headless=True,
                    chromium_sandbox=False,
                    args=["--disable-dev-shm-usage"],
                )
                try:
                    context_kwargs: dict[str, object] = {}
                    if headers.get("user-agent"):
                        context_kwargs["user_agent"] = headers["user-agent"]
                    locale = _locale_from_headers(headers)
                    if locale:
                        context_kwargs["locale"] = locale
                    context = browser.new_context(**context_kwargs)
                    extra_headers = {
                        key: value
                        for key, value in headers.items()
                        if key not in _BROWSER_HEADER_SKIP
                    }
                    if extra_headers:
                        context.set_extra_http_headers(extra_headers)
                    page = context.new_page()
                    response = page.goto(
                        request.url, wait_until=self._wait_until, timeout=int(timeout * 1000)
                    )
                    body = page.content()
                    status = response.status if response else 200
                    response_headers = response.all_headers() if response else {}
                    context.close()
                finally:
                    browser.close()
        except PlaywrightError as exc:
            raise TransportError(
                "Browser navigation failed", details={"url": request.url}, cause=exc
            ) from exc

        _LOGGER.debug(
            "Browser exchange finished",
            extra={
                "event": "transport.exchange",
                "adapter": self.name,
                "status": status,
                "elapsed": round(time.monotonic() - start_time, 4),
            },
        )
        kept = [
            (name, value)
            for name, value in response_headers.items()
            if name.lower() not in _RENDERED_HEADER_DROP
        ]
        return ResponseContext(status=status, headers=Headers(kept), body=body.encode("utf-8"))


def _locale_from_headers(headers: Mapping[str, str]) -> str | None:
    accept_language = headers.get("accept-language")
    if not accept_language:
        return None
    primary = accept_language.split(",", 1)[0].strip()
    return primary or None


__all__ = ["BrowserAdapter"]
