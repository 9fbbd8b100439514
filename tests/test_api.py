"""Tests for option merging, request building and the call surface."""

from __future__ import annotations

import pytest

import pipereq
from pipereq import build_request, request
from pipereq.adapters import ReplayAdapter
from pipereq.core.context import Method, ResponseContext, Result
from pipereq.core.options import (
    BUILTIN_DEFAULTS,
    get_default_options,
    resolve_options,
    set_default_options,
)
from pipereq.core.step import Phase, Step
from pipereq.errors import ConfigError, TransportError


def test_option_precedence() -> None:
    set_default_options({"max_retries": 5, "user_agent": "proc"})
    merged = resolve_options({"max_retries": 1, "user_agent": None})

    assert merged["max_retries"] == 1
    assert merged["user_agent"] == "proc"
    assert merged["pool_timeout"] == BUILTIN_DEFAULTS["pool_timeout"]


def test_default_options_are_copied() -> None:
    set_default_options({"cache": True})
    snapshot = get_default_options()
    snapshot["cache"] = False
    assert get_default_options() == {"cache": True}


def test_build_request_lays_out_default_steps() -> None:
    prepared = build_request("get", "https://example.org/", cache=True)
    names = prepared.step_names()

    assert prepared.method is Method.GET
    assert names["request"] == [
        "put_default_headers",
        "put_base_url",
        "put_params",
        "auth",
        "load_netrc",
        "put_range",
        "encode_headers",
        "encode_body",
        "put_if_modified_since",
        "run_adapter",
    ]
    assert names["response"] == [
        "retry",
        "handle_cache",
        "follow_redirects",
        "decompress_body",
        "decode_body",
    ]
    assert names["error"] == ["serve_stale_on_error", "retry"]


def test_disabled_features_drop_their_steps() -> None:
    names = build_request("GET", "https://example.org/", raw=True, max_retries=0).step_names()
    assert names["response"] == ["follow_redirects"]
    assert names["error"] == []


def test_extra_steps_are_inserted() -> None:
    marker = Step.custom("mark", lambda r: r.with_header("X-Mark", "1"))
    after = Step.custom("after", lambda r, resp: resp)
    names = build_request(
        "GET", "https://example.org/", steps=[("request", marker), (Phase.RESPONSE, after)]
    ).step_names()

    assert names["request"][-2:] == ["mark", "run_adapter"]
    assert names["response"][-1] == "after"


def test_invalid_extra_steps_are_config_errors() -> None:
    result = request("GET", "https://example.org/", steps=[("sideways", object())])
    assert isinstance(result.error, ConfigError)


def test_missing_url_and_bad_method() -> None:
    assert isinstance(request("GET").error, ConfigError)
    assert isinstance(request("FETCH", "https://example.org/").error, ConfigError)


def test_relative_url_without_base_is_config_error() -> None:
    adapter = ReplayAdapter()
    result = request("GET", "/relative", adapter=adapter)
    assert isinstance(result.error, ConfigError)
    assert adapter.call_count == 0


def test_base_url_from_process_defaults() -> None:
    set_default_options({"base_url": "https://api.example.org/v2"})
    adapter = ReplayAdapter([ResponseContext(200)])
    request("GET", "users", adapter=adapter).unwrap()
    assert adapter.requests[0].url == "https://api.example.org/v2/users"


def test_pool_options_reach_the_adapter() -> None:
    adapter = ReplayAdapter([ResponseContext(200)])
    request("GET", "https://example.org/", adapter=adapter, receive_timeout=1234).unwrap()
    _, pool_opts = adapter.calls[0]
    assert pool_opts["receive_timeout"] == 1234
    assert pool_opts["pool_timeout"] == BUILTIN_DEFAULTS["pool_timeout"]


def test_helpers_raise_and_send_bodies() -> None:
    adapter = ReplayAdapter([ResponseContext(201), ResponseContext(204)])
    created = pipereq.post("https://example.org/items", {"name": "x"}, adapter=adapter)
    assert created.status == 201
    assert adapter.requests[0].body == b'{"name":"x"}'
    assert pipereq.delete("https://example.org/items/1", adapter=adapter).status == 204

    failing = ReplayAdapter(default=OSError("down"))
    with pytest.raises(TransportError):
        pipereq.get("https://example.org/", adapter=failing, max_retries=0)


def test_unknown_adapter_name() -> None:
    result = request("GET", "https://example.org/", adapter="carrier-pigeon")
    assert isinstance(result.error, ConfigError)


def test_timeout_default_and_override_reach_adapter() -> None:
    set_default_options({"timeout": 1000})
    adapter = ReplayAdapter(default=ResponseContext(200))

    request("GET", "https://example.org/", adapter=adapter, timeout=2000).unwrap()
    request("GET", "https://example.org/", adapter=adapter).unwrap()

    assert [opts["timeout"] for _, opts in adapter.calls] == [2000, 1000]


def test_call_headers_extend_process_headers() -> None:
    set_default_options({"headers": {"Accept-Language": "en", "X-Team": "core"}})
    prepared = build_request("GET", "https://example.org/", headers=[("x-team", "edge"), ("Accept", "a/b")])

    assert prepared.headers.get("accept-language") == "en"
    assert prepared.headers.get_all("x-team") == ["edge"]
    assert prepared.headers.get("accept") == "a/b"


def test_extra_step_removing_run_adapter_prevents_transport() -> None:
    adapter = ReplayAdapter(default=ResponseContext(200))
    drop = Step.custom("drop_transport", lambda r: r.remove_step("run_adapter"))

    result = request("GET", "https://example.org/", adapter=adapter, steps=[("request", drop)])

    assert adapter.call_count == 0
    assert isinstance(result.error, ConfigError)
    assert "run_adapter" not in result.error.details["request_steps"]


def test_unwrap_of_empty_result_raises() -> None:
    assert Result(response=ResponseContext(204)).unwrap().status == 204
    with pytest.raises(ValueError):
        Result().unwrap()
