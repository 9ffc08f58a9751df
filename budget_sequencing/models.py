from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from budget_sequencing.steps import StepRow


@dataclass(frozen=True, slots=True)
class Completed:
    remaining_ms: int
    kind: Literal["completed"] = field(default="completed", init=False)


@dataclass(frozen=True, slots=True)
class Expired:
    # Step names in original sequence order.
    unexecuted: tuple[str, ...]
    kind: Literal["expired"] = field(default="expired", init=False)


RunOutcome = Union[Completed, Expired]


@dataclass(frozen=True, slots=True)
class RunReport:
    """
    Everything a reporter needs: rows in execution order and the terminal outcome.
    """

    name: str
    total_timeout_ms: int
    rows: tuple[StepRow, ...]
    outcome: RunOutcome

    @property
    def completed(self) -> bool:
        return isinstance(self.outcome, Completed)

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.outcome, Completed):
            outcome: dict[str, Any] = {"kind": "completed", "remaining_ms": self.outcome.remaining_ms}
        else:
            outcome = {"kind": "expired", "unexecuted": list(self.outcome.unexecuted)}
        return {
            "name": self.name,
            "total_timeout_ms": self.total_timeout_ms,
            "rows": [
                {
                    "step": r.step_name,
                    "allotted_ms": r.allotted_ms,
                    "remaining_parent_ms": r.remaining_parent_ms,
                }
                for r in self.rows
            ],
            "outcome": outcome,
        }
