"""Tests for the step runner."""

from __future__ import annotations

import pytest

from pipereq.core.context import RequestContext, ResponseContext
from pipereq.core.runner import RunnerHooks, StepRunner
from pipereq.core.step import Continue, Halt, Phase, Restart, Step
from pipereq.errors import ConfigError, HTTPStatusError, ReqError, TransportError


def _request(transport=None, **steps: object) -> RequestContext:
    request = RequestContext.build("GET", "https://example.org/")
    if transport is not None:
        steps["request_steps"] = [*steps.get("request_steps", ()), _send(transport)]
    return request.evolve(**steps)


def _send(transport) -> Step:
    return Step.custom("send", transport)


def _tag(name: str) -> Step:
    return Step.custom(name, lambda request: request.with_header(f"X-{name}", "1"))


def test_request_steps_run_in_order_then_transport() -> None:
    seen: list[list[str]] = []

    def transport(request: RequestContext) -> ResponseContext:
        seen.append(request.headers.keys())
        return ResponseContext(200, body=b"ok")

    request = _request(transport, request_steps=[_tag("a"), _tag("b")])
    outcome = StepRunner().run(request)

    assert isinstance(outcome, ResponseContext)
    assert outcome.body == b"ok"
    assert seen == [["X-a", "X-b"]]


def test_halting_with_response_skips_transport_and_runs_response_steps() -> None:
    cached = ResponseContext(200, body=b"cached")

    def transport(_: RequestContext) -> ResponseContext:
        raise AssertionError("transport must not run")

    request = _request(
        transport,
        request_steps=[Step.custom("short", lambda r: Halt(cached)), _tag("never")],
        response_steps=[Step.custom("mark", lambda r, resp: resp.put_private("seen", True))],
    )
    outcome = StepRunner().run(request)

    assert isinstance(outcome, ResponseContext)
    assert outcome.body == b"cached"
    assert outcome.get_private("seen") is True


def test_step_removed_by_earlier_step_never_runs() -> None:
    calls: list[str] = []

    def transport(_: RequestContext) -> ResponseContext:
        calls.append("send")
        return ResponseContext(200)

    def drop(request: RequestContext) -> RequestContext:
        return request.remove_step("send").remove_step("b")

    def tag_b(request: RequestContext) -> RequestContext:
        calls.append("b")
        return request

    request = _request(
        transport,
        request_steps=[Step.custom("drop", drop), Step.custom("b", tag_b)],
    )
    outcome = StepRunner().run(request)

    assert calls == []
    assert isinstance(outcome, ConfigError)
    assert outcome.details["request_steps"] == ["drop"]


def test_request_phase_without_transport_step_is_config_error() -> None:
    outcome = StepRunner().run(_request(request_steps=[_tag("a")]))

    assert isinstance(outcome, ConfigError)
    assert outcome.request is not None
    assert outcome.request.headers.get("X-a") == "1"


def test_halt_in_response_phase_stops_remaining_steps() -> None:
    calls: list[str] = []

    def first(request: RequestContext, response: ResponseContext) -> Halt:
        calls.append("first")
        return Halt(response.evolve(body=b"final"))

    def second(request: RequestContext, response: ResponseContext) -> ResponseContext:
        calls.append("second")
        return response

    request = _request(
        lambda r: ResponseContext(200),
        response_steps=[Step.custom("first", first), Step.custom("second", second)],
    )
    outcome = StepRunner().run(request)

    assert calls == ["first"]
    assert outcome.body == b"final"


def test_response_step_returning_error_switches_to_error_phase() -> None:
    def fail(request: RequestContext, response: ResponseContext) -> HTTPStatusError:
        return HTTPStatusError("bad status")

    def recover(request: RequestContext, error: ReqError) -> ResponseContext:
        return ResponseContext(200, body=b"recovered")

    request = _request(
        lambda r: ResponseContext(500),
        response_steps=[Step.custom("fail", fail)],
        error_steps=[Step.custom("recover", recover)],
    )
    outcome = StepRunner().run(request)

    assert isinstance(outcome, ResponseContext)
    assert outcome.body == b"recovered"


def test_error_carries_request_and_response() -> None:
    request = _request(
        lambda r: ResponseContext(404),
        response_steps=[Step.custom("fail", lambda r, resp: HTTPStatusError("nope"))],
    )
    outcome = StepRunner().run(request)

    assert isinstance(outcome, HTTPStatusError)
    assert outcome.request is not None
    assert outcome.response is not None and outcome.response.status == 404


def test_raised_req_error_is_treated_as_returned() -> None:
    def transport(_: RequestContext) -> ResponseContext:
        raise TransportError("connection refused")

    outcome = StepRunner().run(_request(transport))
    assert isinstance(outcome, TransportError)


def test_other_exceptions_propagate() -> None:
    def broken(_: RequestContext) -> RequestContext:
        raise ValueError("bug")

    with pytest.raises(ValueError):
        StepRunner().run(
            _request(lambda r: ResponseContext(200), request_steps=[Step.custom("broken", broken)])
        )


def test_restart_reruns_pipeline_and_records_attempts() -> None:
    responses = iter([ResponseContext(503), ResponseContext(200)])

    def again(request: RequestContext, response: ResponseContext):
        if response.status == 503:
            return Restart(request.put_private("again", True))
        return response

    runner = StepRunner()
    outcome = runner.run(
        _request(lambda r: next(responses), response_steps=[Step.custom("again", again)])
    )

    assert outcome.status == 200
    assert len(runner.attempts) == 2
    assert [a.get_private("attempt") for a in runner.attempts] == [1, 2]
    assert runner.attempts[1].get_private("again") is True


def test_continue_with_request_replaces_exchange_request() -> None:
    def swap(request: RequestContext, response: ResponseContext) -> Continue:
        return Continue(response, request=request.put_private("swapped", True))

    def check(request: RequestContext, response: ResponseContext) -> ResponseContext:
        return response.put_private("swapped", request.get_private("swapped"))

    request = _request(
        lambda r: ResponseContext(200),
        response_steps=[Step.custom("swap", swap), Step.custom("check", check)],
    )
    outcome = StepRunner().run(request)

    assert outcome.get_private("swapped") is True


def test_step_may_insert_steps_while_running() -> None:
    transport_headers: list[list[str]] = []

    def transport(request: RequestContext) -> ResponseContext:
        transport_headers.append(request.headers.keys())
        return ResponseContext(200)

    def extend(request: RequestContext) -> RequestContext:
        return request.prepend_request_step(_tag("early")).remove_step("send").append_request_step(
            _send(transport)
        )

    outcome = StepRunner().run(_request(request_steps=[Step.custom("extend", extend)]))

    assert outcome.status == 200
    assert transport_headers == [[]]


def test_appended_step_runs_before_later_transport() -> None:
    transport_headers: list[list[str]] = []

    def transport(request: RequestContext) -> ResponseContext:
        transport_headers.append(request.headers.keys())
        return ResponseContext(200)

    def extend(request: RequestContext) -> RequestContext:
        return request.remove_step("send").append_request_step(_tag("late")).append_request_step(
            _send(transport)
        )

    StepRunner().run(_request(transport, request_steps=[Step.custom("extend", extend)]))
    assert transport_headers == [["X-late"]]


def test_hooks_observe_steps_and_errors() -> None:
    events: list[str] = []
    hooks = RunnerHooks(
        before_step=lambda name, phase: events.append(f"before:{name}:{phase.value}"),
        after_step=lambda name, phase: events.append(f"after:{name}"),
        on_error=lambda name, phase, exc: events.append(f"error:{name}:{type(exc).__name__}"),
    )

    def fail(_: RequestContext) -> RequestContext:
        raise TransportError("down")

    StepRunner(hooks=hooks).run(
        _request(lambda r: ResponseContext(200), request_steps=[_tag("a"), Step.custom("fail", fail)])
    )

    assert events == [
        f"before:a:{Phase.REQUEST.value}",
        "after:a",
        f"before:fail:{Phase.REQUEST.value}",
        "error:fail:TransportError",
    ]


def test_run_or_raise_raises_error_payload() -> None:
    runner = StepRunner()
    with pytest.raises(TransportError):
        runner.run_or_raise(_request(lambda r: TransportError("offline")))


def test_unsupported_payload_is_rejected() -> None:
    with pytest.raises(TypeError):
        StepRunner().run(
            _request(
                lambda r: ResponseContext(200),
                response_steps=[Step.custom("bad", lambda r, resp: 42)],
            )
        )
