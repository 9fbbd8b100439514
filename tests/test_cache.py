"""Tests for response caching: stores, freshness and the cache steps."""

from __future__ import annotations

import json
import time
from email.utils import formatdate
from pathlib import Path

from pipereq import request, request_or_raise
from pipereq.adapters import ReplayAdapter
from pipereq.cache import FileCacheStore, MemoryCacheStore, cache_key, freshness_lifetime, is_fresh
from pipereq.cache.freshness import STORED_AT
from pipereq.core.context import RequestContext, ResponseContext
from pipereq.core.headers import Headers
from pipereq.errors import ConfigError, TransportError


def _fresh(body: bytes = b"cached", max_age: int = 60) -> ResponseContext:
    return ResponseContext(200, headers={"Cache-Control": f"max-age={max_age}"}, body=body)


def test_freshness_lifetime_sources() -> None:
    assert freshness_lifetime(Headers({"Cache-Control": "public, max-age=120"})) == 120
    assert freshness_lifetime(Headers({"Cache-Control": "no-cache, max-age=120"})) == 0
    now = time.time()
    expires = Headers({"Date": formatdate(now, usegmt=True), "Expires": formatdate(now + 300, usegmt=True)})
    assert 299 <= freshness_lifetime(expires) <= 300
    assert freshness_lifetime(Headers()) is None


def test_is_fresh_accounts_for_stored_time_and_age() -> None:
    stored = _fresh(max_age=60).put_private(STORED_AT, 1000.0)
    assert is_fresh(stored, now=1030.0)
    assert not is_fresh(stored, now=1061.0)
    aged = stored.evolve(headers=stored.headers.set("Age", "50"))
    assert not is_fresh(aged, now=1030.0)


def test_cache_key_depends_on_method_url_and_selected_headers() -> None:
    base = RequestContext.build("GET", "https://Example.org/a")
    assert cache_key(base) == cache_key(RequestContext.build("GET", "https://example.org/a"))
    assert cache_key(base) != cache_key(RequestContext.build("HEAD", "https://example.org/a"))
    assert cache_key(base) != cache_key(base.with_header("Accept", "application/json"))
    assert cache_key(base) == cache_key(base.with_header("X-Trace", "1"))


def test_file_store_round_trip(tmp_path: Path) -> None:
    store = FileCacheStore(tmp_path)
    store.put("k", ResponseContext(200, headers=[("ETag", '"v1"'), ("Set-Cookie", "a"), ("Set-Cookie", "b")], body=b"\x00data"))

    loaded = store.get("k")
    assert loaded is not None
    assert loaded.body == b"\x00data"
    assert loaded.headers.get_all("set-cookie") == ["a", "b"]
    assert loaded.get_private(STORED_AT) is not None
    assert store.get("missing") is None


def test_file_store_ignores_corrupt_entries(tmp_path: Path) -> None:
    store = FileCacheStore(tmp_path)
    store.path_for("bad").write_text("{not json", encoding="utf-8")
    assert store.get("bad") is None


def test_fresh_hit_bypasses_failing_adapter(tmp_path: Path) -> None:
    warm = ReplayAdapter([_fresh(b"payload")])
    first = request_or_raise("GET", "https://example.org/doc", adapter=warm, cache=True, cache_dir=str(tmp_path))
    assert first.body == b"payload"

    failing = ReplayAdapter(default=OSError("offline"))
    second = request_or_raise(
        "GET", "https://example.org/doc", adapter=failing, cache=True, cache_dir=str(tmp_path)
    )

    assert second.body == b"payload"
    assert second.get_private("cache") == "hit"
    assert failing.call_count == 0


def test_stale_entry_revalidates_with_conditional_headers() -> None:
    store = MemoryCacheStore()
    stale = ResponseContext(
        200,
        headers={"ETag": '"v1"', "Last-Modified": "Mon, 01 Jan 2024 00:00:00 GMT", "Cache-Control": "no-cache"},
        body=b"old",
    )
    adapter = ReplayAdapter([stale, ResponseContext(304, headers={"ETag": '"v1"', "Cache-Control": "max-age=60"})])
    options = {"adapter": adapter, "cache": True, "cache_store": store}

    request_or_raise("GET", "https://example.org/r", **options)
    assert len(store) == 1

    revalidated = request_or_raise("GET", "https://example.org/r", **options)
    conditional = adapter.requests[1]
    assert conditional.headers["If-None-Match"] == '"v1"'
    assert conditional.headers["If-Modified-Since"] == "Mon, 01 Jan 2024 00:00:00 GMT"
    assert revalidated.status == 200
    assert revalidated.body == b"old"
    assert revalidated.get_private("cache") == "revalidated"
    assert revalidated.header("cache-control") == "max-age=60"


def test_no_store_responses_are_not_cached() -> None:
    store = MemoryCacheStore()
    adapter = ReplayAdapter([ResponseContext(200, headers={"Cache-Control": "no-store"}, body=b"x")])
    request_or_raise("GET", "https://example.org/private", adapter=adapter, cache=True, cache_store=store)
    assert len(store) == 0


def test_stale_entry_served_when_transport_fails() -> None:
    store = MemoryCacheStore()
    seed = RequestContext.build("GET", "https://example.org/s")
    store.put(cache_key(seed), ResponseContext(200, headers={"Cache-Control": "no-cache"}, body=b"stale"))

    adapter = ReplayAdapter(default=OSError("offline"))
    result = request(
        "GET", "https://example.org/s", adapter=adapter, cache=True, cache_store=store, max_retries=0
    )

    assert result.ok
    assert result.response.body == b"stale"
    assert result.response.get_private("cache") == "stale"


def test_post_requests_bypass_cache() -> None:
    store = MemoryCacheStore()
    adapter = ReplayAdapter(default=_fresh())
    request_or_raise("POST", "https://example.org/p", adapter=adapter, cache=True, cache_store=store, body=b"1")
    assert len(store) == 0


def test_transport_error_without_entry_stays_error() -> None:
    adapter = ReplayAdapter(default=OSError("offline"))
    result = request(
        "GET", "https://example.org/none", adapter=adapter, cache=True, cache_store=MemoryCacheStore(), max_retries=0
    )
    assert isinstance(result.error, TransportError)


def test_file_store_entry_layout(tmp_path: Path) -> None:
    store = FileCacheStore(tmp_path)
    store.put("abc", _fresh(b"hi"))
    data = json.loads(store.path_for("abc").read_text(encoding="utf-8"))
    assert data["status"] == 200
    assert "stored_at" in data


def test_unwritable_cache_dir_still_returns_response(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    adapter = ReplayAdapter([_fresh(b"body")])

    result = request(
        "GET", "https://example.org/w", adapter=adapter, cache=True, cache_dir=str(blocker / "sub")
    )

    assert result.ok
    assert result.response.body == b"body"
    assert not (blocker / "sub").exists()


def test_file_store_put_swallows_write_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    store = FileCacheStore(blocker / "sub")

    store.put("k", _fresh())

    assert store.get("k") is None


def test_out_of_range_port_with_cache_is_config_error(tmp_path: Path) -> None:
    adapter = ReplayAdapter(default=ResponseContext(200))
    result = request(
        "GET", "http://example.org:99999/", adapter=adapter, cache=True, cache_dir=str(tmp_path)
    )

    assert isinstance(result.error, ConfigError)
    assert result.error.details["url"] == "http://example.org:99999/"
    assert adapter.call_count == 0
