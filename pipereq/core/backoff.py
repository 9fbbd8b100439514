"""Delay policy used between retry attempts."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass


@dataclass(slots=True)
class Backoff:
    """Exponential backoff in milliseconds with proportional jitter."""

    base_delay: float = 1000.0
    factor: float = 2.0
    max_delay: float = 30000.0
    jitter: float = 0.25

    def __post_init__(self) -> None:
        if self.max_delay < self.base_delay:
            self.max_delay = self.base_delay

    def compute_delay(self, attempt: int, *, retry_after: float | None = None) -> float:
        """Delay in ms before retry number ``attempt`` (0-based).

        A server supplied ``retry_after`` (ms) wins over the computed value.
        """
        if retry_after is not None and retry_after > 0:
            wait = retry_after
        else:
            wait = min(self.base_delay * (self.factor ** max(attempt, 0)), self.max_delay)
        return wait + random.uniform(0, self.jitter * wait)

    def sleep(self, delay_ms: float) -> float:
        if delay_ms > 0:
            time.sleep(delay_ms / 1000.0)
        return delay_ms


__all__ = ["Backoff"]
