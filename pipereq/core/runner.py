"""Executes request, response and error steps over one logical request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from ..errors import ConfigError, ReqError
from ..utils.logging import get_logger
from .context import RequestContext, ResponseContext
from .step import Continue, Halt, Payload, Phase, Restart, Step

LOGGER = get_logger(__name__)

_DONE = "done"
_HALT = "halt"
_SWITCH = "switch"
_RESTART = "restart"


@dataclass(slots=True)
class RunnerHooks:
    """Optional observers called around every step."""

    before_step: Callable[[str, Phase], None] | None = None
    after_step: Callable[[str, Phase], None] | None = None
    on_error: Callable[[str, Phase, BaseException], None] | None = None


class StepRunner:
    """Runs the pipeline of a single logical request.

    One runner serves one call: :attr:`attempts` records every request that
    entered the request phase, including retry and redirect re-entries.
    """

    def __init__(self, *, hooks: RunnerHooks | None = None) -> None:
        self._hooks = hooks or RunnerHooks()
        self.attempts: list[RequestContext] = []

    def run(self, request: RequestContext) -> ResponseContext | ReqError:
        current = request
        while True:
            current = current.put_private("attempt", len(self.attempts) + 1)
            self.attempts.append(current)
            status, next_request, payload = self._run_attempt(current)
            if status == _RESTART:
                LOGGER.debug(
                    "Restarting pipeline",
                    extra={
                        "event": "pipeline.restart",
                        "attempt": len(self.attempts),
                        "url": next_request.url,
                    },
                )
                current = next_request
                continue
            return payload

    def run_or_raise(self, request: RequestContext) -> ResponseContext:
        outcome = self.run(request)
        if isinstance(outcome, ReqError):
            raise outcome
        return outcome

    def _run_attempt(self, request: RequestContext) -> tuple[str, RequestContext, Any]:
        status, request, payload = self._run_request_phase(request)
        if status == _RESTART:
            return status, request, None
        if isinstance(payload, RequestContext):
            # Transport is a step; a request that outlives the phase was never sent.
            request = payload
            payload = _attach(
                ConfigError(
                    "No request step produced a response",
                    details={"request_steps": [step.name for step in request.request_steps]},
                ),
                request,
            )

        visited: set[Phase] = set()
        while True:
            phase = Phase.RESPONSE if isinstance(payload, ResponseContext) else Phase.ERROR
            if phase in visited:
                return _DONE, request, payload
            visited.add(phase)
            status, request, payload = self._run_payload_phase(phase, request, payload)
            if status == _SWITCH:
                continue
            return status, request, payload

    def _run_request_phase(
        self, request: RequestContext
    ) -> tuple[str, RequestContext, Payload | None]:
        index = 0
        while index < len(request.request_steps):
            step = request.request_steps[index]
            result = self._invoke(step, Phase.REQUEST, request)
            if isinstance(result, Restart):
                return _RESTART, result.request, None
            halted = isinstance(result, Halt)
            payload, replacement = _unpack(result)

            if isinstance(payload, RequestContext):
                request = payload
                index = _next_index(request.request_steps, step, index)
                if halted:
                    return _HALT, request, request
                continue

            if replacement is not None:
                request = replacement
            return _HALT, request, _attach(payload, request)
        return _DONE, request, request

    def _run_payload_phase(
        self, phase: Phase, request: RequestContext, payload: Payload
    ) -> tuple[str, RequestContext, Any]:
        index = 0
        while True:
            steps = _steps_for(request, phase)
            if index >= len(steps):
                return _DONE, request, payload
            step = steps[index]
            result = self._invoke(step, phase, request, payload)
            if isinstance(result, Restart):
                return _RESTART, result.request, None
            halted = isinstance(result, Halt)
            next_payload, replacement = _unpack(result)
            if isinstance(next_payload, RequestContext):
                replacement, next_payload = next_payload, payload

            if replacement is not None:
                request = replacement
                index = _next_index(_steps_for(request, phase), step, index)
            else:
                index += 1

            response = payload if isinstance(payload, ResponseContext) else None
            payload = _attach(next_payload, request, response)
            if halted:
                return _HALT, request, payload
            if phase is Phase.RESPONSE and isinstance(payload, ReqError):
                return _SWITCH, request, payload
            if phase is Phase.ERROR and isinstance(payload, ResponseContext):
                return _SWITCH, request, payload

    def _invoke(self, step: Step, phase: Phase, *args: Any) -> Any:
        hooks = self._hooks
        if hooks.before_step:
            hooks.before_step(step.name, phase)
        LOGGER.debug(
            "Running step %s",
            step.name,
            extra={"event": "pipeline.step", "phase": phase.value, "step": step.name},
        )
        try:
            result = step(*args)
        except ReqError as exc:
            if hooks.on_error:
                hooks.on_error(step.name, phase, exc)
            return exc
        except Exception as exc:
            if hooks.on_error:
                hooks.on_error(step.name, phase, exc)
            raise
        if hooks.after_step:
            hooks.after_step(step.name, phase)
        return result


def _unpack(result: Any) -> tuple[Any, RequestContext | None]:
    if isinstance(result, (Continue, Halt)):
        return result.payload, result.request
    return result, None


def _attach(
    payload: Any, request: RequestContext, response: ResponseContext | None = None
) -> Any:
    if isinstance(payload, ReqError):
        payload.with_context(request=request, response=response)
        return payload
    if isinstance(payload, (RequestContext, ResponseContext)):
        return payload
    raise TypeError(f"Step returned unsupported payload: {type(payload).__name__}")


def _steps_for(request: RequestContext, phase: Phase) -> tuple[Step, ...]:
    if phase is Phase.REQUEST:
        return request.request_steps
    if phase is Phase.RESPONSE:
        return request.response_steps
    return request.error_steps


def _next_index(steps: Sequence[Step], current: Step, index: int) -> int:
    """Position after ``current`` in a list the step may just have edited."""
    positions = [i for i, step in enumerate(steps) if step == current]
    if not positions:
        return index
    return min(positions, key=lambda i: abs(i - index)) + 1


__all__ = ["RunnerHooks", "StepRunner"]
