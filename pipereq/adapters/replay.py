"""In-process adapter that records requests and replays canned outcomes."""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Callable, Iterable, Mapping, Union

from ..core.context import RequestContext, ResponseContext
from .base import Adapter

Outcome = Union[ResponseContext, BaseException, Callable[[RequestContext], ResponseContext]]


class ReplayAdapter(Adapter):
    """Test double: each call pops the next outcome.

    An outcome is a response, an exception to raise, or a callable that
    builds the response from the request. Once the queue is empty the last
    outcome repeats when ``repeat_last`` is set, otherwise ``default`` is used.
    """

    name = "replay"

    def __init__(
        self,
        outcomes: Iterable[Outcome] = (),
        *,
        default: Outcome | None = None,
        repeat_last: bool = False,
    ) -> None:
        self._outcomes: deque[Outcome] = deque(outcomes)
        self._default = default
        self._repeat_last = repeat_last
        self._last: Outcome | None = None
        self._lock = threading.Lock()
        self.calls: list[tuple[RequestContext, dict[str, Any]]] = []

    @property
    def requests(self) -> list[RequestContext]:
        return [request for request, _ in self.calls]

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def queue(self, *outcomes: Outcome) -> None:
        with self._lock:
            self._outcomes.extend(outcomes)

    def perform(self, request: RequestContext, pool_opts: Mapping[str, Any]) -> ResponseContext:
        with self._lock:
            self.calls.append((request, dict(pool_opts)))
            if self._outcomes:
                outcome = self._outcomes.popleft()
                self._last = outcome
            elif self._repeat_last and self._last is not None:
                outcome = self._last
            elif self._default is not None:
                outcome = self._default
            else:
                raise AssertionError(f"No replay outcome left for {request.method.value} {request.url}")

        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, ResponseContext):
            return outcome
        return outcome(request)


__all__ = ["ReplayAdapter", "Outcome"]
