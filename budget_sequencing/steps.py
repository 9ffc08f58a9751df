from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

from budget_sequencing.budget import Budget, remaining_millis, scoped_budget
from budget_sequencing.clock import Clock
from budget_sequencing.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FixedStep:
    """
    Occupies a literal number of milliseconds, regardless of the parent budget.

    No clamping: a fixed step that is larger than what is left is exactly the
    situation the simulator exposes.
    """

    name: str
    timeout_ms: int
    executed: bool = field(default=False, init=False)

    def mark_executed(self) -> None:
        self.executed = True


@dataclass(slots=True)
class WeightedStep:
    """
    Occupies `weight` of the parent's remaining budget.

    A priority step whose share falls below the priority floor takes the
    whole remaining parent budget instead (see budget.derive_budget).
    """

    name: str
    weight: float
    priority: bool = False
    executed: bool = field(default=False, init=False)

    def mark_executed(self) -> None:
        self.executed = True


Step = Union[FixedStep, WeightedStep]


@dataclass(frozen=True, slots=True)
class StepRow:
    """One report row: what a step was allotted and what the parent had left after it."""

    step_name: str
    allotted_ms: int
    remaining_parent_ms: int


@dataclass(frozen=True, slots=True)
class StepBuilder:
    """step("fetch").with_timeout(20) / step("rank").with_weight(0.5, priority=True)"""

    name: str

    def with_timeout(self, timeout_ms: int) -> FixedStep:
        return fixed(self.name, timeout_ms)

    def with_weight(self, weight: float, priority: bool = False) -> WeightedStep:
        return weighted(self.name, weight, priority=priority)


def step(name: str) -> StepBuilder:
    return StepBuilder(name)


def fixed(name: str, timeout_ms: int) -> FixedStep:
    s = FixedStep(name=name, timeout_ms=timeout_ms)
    validate_step(s)
    return s


def weighted(name: str, weight: float, priority: bool = False) -> WeightedStep:
    s = WeightedStep(name=name, weight=weight, priority=priority)
    validate_step(s)
    return s


def validate_step(s: Step, *, label: str | None = None) -> None:
    """Raise ConfigurationError if the step cannot produce a meaningful budget."""
    label = label or "step"
    if not isinstance(s.name, str) or not s.name.strip():
        raise ConfigurationError(f"{label}.name must be a non-empty string")

    if isinstance(s, FixedStep):
        # bool is an int subclass; reject it explicitly.
        if isinstance(s.timeout_ms, bool) or not isinstance(s.timeout_ms, int):
            raise ConfigurationError(f"{label}.timeout_ms must be an int (step {s.name!r})")
        if s.timeout_ms < 0:
            raise ConfigurationError(
                f"{label}.timeout_ms must be >= 0 (step {s.name!r}, got {s.timeout_ms})"
            )
        return

    if isinstance(s, WeightedStep):
        if isinstance(s.weight, bool) or not isinstance(s.weight, (int, float)):
            raise ConfigurationError(f"{label}.weight must be a number (step {s.name!r})")
        if not (0.0 < float(s.weight) <= 1.0):
            raise ConfigurationError(
                f"{label}.weight must be in (0, 1] (step {s.name!r}, got {s.weight})"
            )
        if not isinstance(s.priority, bool):
            raise ConfigurationError(f"{label}.priority must be a bool (step {s.name!r})")
        return

    raise ConfigurationError(f"{label} has unsupported type {type(s).__name__}")


def fresh_copy(s: Step) -> Step:
    """Return an unexecuted copy of a step with the same configuration."""
    if isinstance(s, FixedStep):
        return FixedStep(name=s.name, timeout_ms=s.timeout_ms)
    if isinstance(s, WeightedStep):
        return WeightedStep(name=s.name, weight=s.weight, priority=s.priority)
    raise TypeError(f"unsupported step type: {type(s).__name__}")


def describe(s: Step) -> str:
    if isinstance(s, FixedStep):
        return f"fixed {s.timeout_ms}ms"
    if isinstance(s, WeightedStep):
        label = f"weighted {s.weight:g}"
        return f"{label} priority" if s.priority else label
    raise TypeError(f"unsupported step type: {type(s).__name__}")


def run_step(s: Step, parent: Budget, clock: Clock) -> StepRow:
    """
    Occupy the step's allotted time and return its report row.

    - FixedStep: occupies timeout_ms unconditionally.
    - WeightedStep: derives a child budget, occupies all of it, releases it.
      An allotment <= 0 occupies no wall time but is still reported as-is.

    The caller marks the step executed when it records the row.
    """
    if isinstance(s, FixedStep):
        clock.sleep_ms(s.timeout_ms)
        row = StepRow(s.name, int(s.timeout_ms), remaining_millis(parent))
    elif isinstance(s, WeightedStep):
        with scoped_budget(parent, s.weight, s.priority) as child:
            allotted = remaining_millis(child)
            clock.sleep_ms(max(0, allotted))
        row = StepRow(s.name, allotted, remaining_millis(parent))
    else:
        raise TypeError(f"unsupported step type: {type(s).__name__}")

    logger.debug(
        "step %s finished: allotted=%dms parent_remaining=%dms",
        row.step_name,
        row.allotted_ms,
        row.remaining_parent_ms,
    )
    return row
