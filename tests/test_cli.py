"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pipereq.adapters import ReplayAdapter, register_adapter
from pipereq.app import cli
from pipereq.core.context import ResponseContext


@pytest.fixture
def replay(monkeypatch: pytest.MonkeyPatch) -> ReplayAdapter:
    adapter = ReplayAdapter()
    register_adapter("replay", lambda: adapter)
    monkeypatch.chdir(Path(__file__).parent)
    return adapter


def test_prints_decoded_json_body(replay: ReplayAdapter, capsys: pytest.CaptureFixture[str]) -> None:
    replay.queue(ResponseContext(200, headers={"Content-Type": "application/json"}, body=b'{"a": 1}'))

    code = cli.main(["GET", "https://example.org/", "--adapter", "replay", "-p", "q=1", "-H", "X-Test: yes"])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {"a": 1}
    sent = replay.requests[0]
    assert sent.url == "https://example.org/?q=1"
    assert sent.headers["X-Test"] == "yes"


def test_include_prints_status_and_headers(replay: ReplayAdapter, capsys: pytest.CaptureFixture[str]) -> None:
    replay.queue(ResponseContext(200, headers={"Content-Type": "text/plain"}, body=b"hello"))

    assert cli.main(["get", "https://example.org/", "--adapter", "replay", "--include"]) == 0

    out = capsys.readouterr().out
    assert out.startswith("HTTP 200\n")
    assert "Content-Type: text/plain\n" in out
    assert out.endswith("hello\n")


def test_json_body_is_sent(replay: ReplayAdapter) -> None:
    replay.queue(ResponseContext(201))
    assert cli.main(["POST", "https://example.org/", "--adapter", "replay", "--json", '{"x": 2}']) == 0
    assert replay.requests[0].body == b'{"x":2}'


def test_request_error_exits_with_one(replay: ReplayAdapter) -> None:
    replay.queue(OSError("down"))
    assert cli.main(["GET", "https://example.org/", "--adapter", "replay", "--max-retries", "0"]) == 1


def test_usage_errors_exit_with_two(replay: ReplayAdapter) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["GET", "https://example.org/", "-H", "no-colon"])
    assert excinfo.value.code == 2

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["GET", "https://example.org/", "--json", "{bad"])
    assert excinfo.value.code == 2

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", "/nonexistent/pipereq.toml", "GET", "https://example.org/"])
    assert excinfo.value.code == 2


def test_show_steps_does_not_send(replay: ReplayAdapter, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["GET", "https://example.org/", "--adapter", "replay", "--raw", "--show-steps"]) == 0

    layout = json.loads(capsys.readouterr().out)
    assert layout["request"][-1] == "run_adapter"
    assert "decode_body" not in layout["response"]
    assert replay.call_count == 0


def test_config_file_sets_defaults(tmp_path: Path, replay: ReplayAdapter) -> None:
    config = tmp_path / "pipereq.toml"
    config.write_text('[http]\nadapter = "replay"\nuser_agent = "from-config"\n', encoding="utf-8")
    replay.queue(ResponseContext(200))

    assert cli.main(["--config", str(config), "GET", "https://example.org/"]) == 0
    assert replay.requests[0].headers["User-Agent"] == "from-config"
