"""Tests for the case-insensitive header map."""

from __future__ import annotations

import pytest

from pipereq.core.headers import Headers


def test_lookup_is_case_insensitive_and_keeps_casing() -> None:
    headers = Headers({"Content-Type": "text/plain"})
    assert headers.get("content-type") == "text/plain"
    assert "CONTENT-TYPE" in headers
    assert headers.keys() == ["Content-Type"]


def test_set_replaces_all_values_at_first_position() -> None:
    headers = Headers([("Accept", "a"), ("X-One", "1"), ("accept", "b")])
    updated = headers.set("ACCEPT", "c")
    assert updated.items() == [("ACCEPT", "c"), ("X-One", "1")]
    # original untouched
    assert headers.get_all("accept") == ["a", "b"]


def test_setdefault_returns_same_instance_when_present() -> None:
    headers = Headers({"User-Agent": "x"})
    assert headers.setdefault("user-agent", "y") is headers
    assert headers.setdefault("Accept", "*/*").get("accept") == "*/*"


def test_as_dict_joins_repeated_names() -> None:
    headers = Headers([("Via", "a"), ("via", "b")])
    assert headers.as_dict() == {"Via": "a, b"}


def test_remove_and_getitem() -> None:
    headers = Headers({"A": "1", "B": "2"}).remove("a")
    assert len(headers) == 1
    assert headers["b"] == "2"
    with pytest.raises(KeyError):
        headers["a"]


def test_equality_ignores_name_case() -> None:
    assert Headers({"ETag": "x"}) == Headers({"etag": "x"})
    assert Headers({"ETag": "x"}) != Headers({"etag": "y"})
