"""Default transport backed by ``urllib``."""

from __future__ import annotations

import http.client
import time
import urllib.error
import urllib.request
from typing import Any, Mapping

from ..core.context import RequestContext, ResponseContext
from ..core.headers import Headers
from ..utils.logging import get_logger
from .base import Adapter, timeout_seconds, wire_body, wire_headers

_LOGGER = get_logger(__name__)


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    def redirect_request(self, req, fp, code, msg, headers, newurl):  # type: ignore[override]
        return None


class UrllibAdapter(Adapter):
    """Stateless ``urllib`` transport; redirects and decompression are left to the pipeline."""

    name = "urllib"
    transport_exceptions = (OSError, http.client.HTTPException)

    def __init__(self) -> None:
        self._opener = urllib.request.build_opener(_NoRedirect())

    def perform(self, request: RequestContext, pool_opts: Mapping[str, Any]) -> ResponseContext:
        req = urllib.request.Request(
            url=request.url,
            headers=wire_headers(request),
            data=wire_body(request),
            method=request.method.value,
        )
        timeout = timeout_seconds(pool_opts)
        start_time = time.monotonic()
        try:
            with self._opener.open(req, timeout=timeout) as resp:
                body = resp.read()
                status = getattr(resp, "status", 200)
                headers = Headers(resp.headers.items())
        except urllib.error.HTTPError as exc:
            # Non-2xx statuses surface as HTTPError but still carry a full response.
            try:
                body = exc.read()
            finally:
                exc.close()
            status = exc.code
            headers = Headers(exc.headers.items() if exc.headers else ())
        elapsed = time.monotonic() - start_time
        _LOGGER.debug(
            "urllib exchange finished",
            extra={
                "event": "transport.exchange",
                "adapter": self.name,
                "status": status,
                "elapsed": round(elapsed, 4),
            },
        )
        return ResponseContext(status=status, headers=headers, body=body)


__all__ = ["UrllibAdapter"]
