from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from budget_sequencing.clock import DEFAULT_CLOCK, NS_PER_MS, Clock

logger = logging.getLogger(__name__)

# A priority step whose weighted share falls below this many ms is granted
# the parent's entire remaining budget instead.
PRIORITY_FLOOR_MS = 30


@dataclass(frozen=True, slots=True)
class Budget:
    """
    An absolute instant after which no more work should happen.

    deadline_ns is measured on `clock`. A derived budget keeps a reference to
    its parent and is never later than it. release() plays the role of a
    cancel handle: it marks the scope as finished and is safe to call twice.
    """

    deadline_ns: int
    clock: Clock = field(default=DEFAULT_CLOCK, repr=False, compare=False)
    parent: Budget | None = field(default=None, repr=False, compare=False)
    _released: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False, compare=False
    )

    @classmethod
    def root(cls, timeout_ms: int, clock: Clock | None = None) -> Budget:
        clock = clock if clock is not None else DEFAULT_CLOCK
        return cls(deadline_ns=clock.now_ns() + int(timeout_ms) * NS_PER_MS, clock=clock)

    @property
    def released(self) -> bool:
        return self._released.is_set()

    def release(self) -> None:
        self._released.set()

    def expired(self) -> bool:
        return remaining_millis(self) <= 0

    def remaining_seconds(self) -> float:
        """Remaining time as float seconds, clamped at zero (for blocking waits)."""
        return max(0.0, (self.deadline_ns - self.clock.now_ns()) / 1e9)


def _ns_to_ms(ns: int) -> int:
    # Truncate toward zero, like integer duration division.
    if ns < 0:
        return -(-ns // NS_PER_MS)
    return ns // NS_PER_MS


def remaining_millis(budget: Budget) -> int:
    """
    Milliseconds between now and the budget's deadline.

    Negative once the deadline has passed; callers treat that as "already
    expired" rather than clamping.
    """
    return _ns_to_ms(budget.deadline_ns - budget.clock.now_ns())


def derive_budget(parent: Budget, weight: float, priority: bool = False) -> Budget:
    """
    Derive a child budget worth `weight` of the parent's remaining time.

    Rules:
    - share = parent_remaining * weight
    - If priority and share < PRIORITY_FLOOR_MS, the child gets the whole
      parent_remaining (an override, not a clamp to the floor).
      The comparison is on the weighted share, not on parent_remaining.
    - Fractional ms are truncated toward zero.
    - The child deadline never exceeds the parent deadline.
    """
    clock = parent.clock
    now = clock.now_ns()
    parent_remaining = _ns_to_ms(parent.deadline_ns - now)

    share = parent_remaining * float(weight)
    if priority and share < PRIORITY_FLOOR_MS:
        logger.debug(
            "priority escalation: share=%.3fms below floor=%dms, granting %dms",
            share,
            PRIORITY_FLOOR_MS,
            parent_remaining,
        )
        share = float(parent_remaining)

    allotted_ms = int(share)
    deadline = min(parent.deadline_ns, now + allotted_ms * NS_PER_MS)
    return Budget(deadline_ns=deadline, clock=clock, parent=parent)


@contextmanager
def scoped_budget(parent: Budget, weight: float, priority: bool = False) -> Iterator[Budget]:
    """
    Derive a child budget for the duration of a with-block.

    The child is released on every exit path, including exceptions.
    """
    child = derive_budget(parent, weight, priority)
    try:
        yield child
    finally:
        child.release()
