from __future__ import annotations

import time
from typing import Protocol

NS_PER_MS = 1_000_000


class Clock(Protocol):
    """
    Time source used by budgets and steps.
    Budgets are always measured against the clock that created them.
    """

    def now_ns(self) -> int: ...

    def sleep_ms(self, ms: int) -> None: ...


class MonotonicClock:
    def now_ns(self) -> int:
        return time.monotonic_ns()

    def sleep_ms(self, ms: int) -> None:
        # Negative durations occupy no wall time.
        if ms > 0:
            time.sleep(ms / 1000.0)


DEFAULT_CLOCK: Clock = MonotonicClock()
