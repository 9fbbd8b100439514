"""Conditional caching steps: lookup before transport, store/revalidate after."""

from __future__ import annotations

from ..cache.freshness import is_fresh, is_storable, refresh_headers
from ..cache.keys import cache_key
from ..cache.store import CacheStore, FileCacheStore
from ..core.context import Method, RequestContext, ResponseContext
from ..core.step import Halt
from ..errors import ConfigError, ReqError, TransportError
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

CACHEABLE_METHODS = frozenset({Method.GET, Method.HEAD})


def _enabled(request: RequestContext) -> bool:
    return bool(request.options.get("cache")) and request.method in CACHEABLE_METHODS


def cache_store_for(request: RequestContext) -> CacheStore:
    store = request.options.get("cache_store")
    if isinstance(store, CacheStore):
        return store
    return FileCacheStore(request.options.get("cache_dir"))


def _key(request: RequestContext) -> str:
    return request.get_private("cache_key") or cache_key(request)


def put_if_modified_since(request: RequestContext) -> RequestContext | Halt:
    """Serve fresh entries without transport; make stale ones conditional."""
    if not _enabled(request):
        return request
    try:
        key = cache_key(request)
    except ValueError as exc:
        return Halt(ConfigError("Malformed request URL", details={"url": request.url}, cause=exc))
    request = request.put_private("cache_key", key)
    cached = cache_store_for(request).get(key)
    if cached is None:
        return request

    if is_fresh(cached):
        LOGGER.debug("Cache hit", extra={"event": "cache.hit", "url": request.url, "key": key})
        return Halt(cached.put_private("cache", "hit"), request=request)

    headers = request.headers
    etag = cached.header("etag")
    if etag:
        headers = headers.set("If-None-Match", etag)
    last_modified = cached.header("last-modified")
    if last_modified:
        headers = headers.set("If-Modified-Since", last_modified)
    return request.evolve(headers=headers)


def handle_cache(request: RequestContext, response: ResponseContext) -> ResponseContext:
    """Swap a 304 for the stored response, or store a cacheable 200."""
    if not _enabled(request) or response.get_private("cache"):
        return response
    key = _key(request)
    store = cache_store_for(request)

    if response.status == 304:
        cached = store.get(key)
        if cached is None:
            return response
        refreshed = refresh_headers(cached, response)
        store.put(key, refreshed)
        LOGGER.debug(
            "Cache revalidated", extra={"event": "cache.revalidated", "url": request.url, "key": key}
        )
        return refreshed.evolve(private={"cache": "revalidated"})

    if (
        response.status == 200
        and isinstance(response.body, (bytes, bytearray))
        and is_storable(response)
    ):
        store.put(key, response)
        LOGGER.debug("Cache stored", extra={"event": "cache.store", "url": request.url, "key": key})
    return response


def serve_stale_on_error(request: RequestContext, error: ReqError) -> ResponseContext | ReqError:
    """Fall back to the stored response when transport fails."""
    if not _enabled(request) or not isinstance(error, TransportError):
        return error
    key = _key(request)
    cached = cache_store_for(request).get(key)
    if cached is None:
        return error
    LOGGER.warning(
        "Serving stored response after transport failure",
        extra={"event": "cache.stale", "url": request.url, "error": str(error)},
    )
    return cached.evolve(private={"cache": "stale"})


__all__ = [
    "CACHEABLE_METHODS",
    "cache_store_for",
    "handle_cache",
    "put_if_modified_since",
    "serve_stale_on_error",
]
