"""Pooled transport backed by ``requests``."""

from __future__ import annotations

import threading
from typing import Any, Mapping

import requests

from ..core.context import RequestContext, ResponseContext
from ..core.headers import Headers
from .base import Adapter, timeout_seconds, wire_body, wire_headers


class RequestsAdapter(Adapter):
    """Keeps one ``requests.Session`` (and its connection pool) per adapter instance."""

    name = "requests"
    transport_exceptions = (requests.RequestException, OSError)

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session = session
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        with self._lock:
            if self._session is None:
                self._session = requests.Session()
            return self._session

    def perform(self, request: RequestContext, pool_opts: Mapping[str, Any]) -> ResponseContext:
        connect_timeout = timeout_seconds(pool_opts, "pool_timeout")
        read_timeout = timeout_seconds(pool_opts, "receive_timeout")
        resp = self.session.request(
            request.method.value,
            request.url,
            headers=wire_headers(request),
            data=wire_body(request),
            timeout=(connect_timeout, read_timeout),
            allow_redirects=False,
            stream=True,
        )
        try:
            # Keep the body as sent on the wire; decompression is a pipeline step.
            body = resp.raw.read(decode_content=False)
        finally:
            resp.close()
        return ResponseContext(
            status=resp.status_code,
            headers=Headers(resp.headers.items()),
            body=body,
        )

    def close(self) -> None:
        with self._lock:
            if self._session is not None:
                self._session.close()
                self._session = None


__all__ = ["RequestsAdapter"]
