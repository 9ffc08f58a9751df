from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from budget_sequencing.clock import Clock
from budget_sequencing.errors import ConfigurationError
from budget_sequencing.event_sink import EventSink
from budget_sequencing.events import Event
from budget_sequencing.sequencer import Sequencer
from budget_sequencing.steps import FixedStep, Step, WeightedStep, validate_step


class InputFormatError(ValueError):
    """Raised when a scenario file fails validation."""


@dataclass(frozen=True)
class Scenario:
    name: str
    timeout_ms: int
    steps: tuple[Step, ...]

    def build_sequencer(
        self,
        *,
        clock: Clock | None = None,
        event_sink: EventSink | None = None,
    ) -> Sequencer:
        return Sequencer(
            self.name,
            self.timeout_ms,
            self.steps,
            clock=clock,
            event_sink=event_sink,
        )


def load_scenario(path: Path) -> Scenario:
    """Load and validate a scenario file.

    Format:
      {
        "name": "checkout",
        "timeout_ms": 600,
        "steps": [
          {"name": "auth", "timeout_ms": 20},
          {"name": "search", "weight": 0.5, "priority": true},
          ...
        ]
      }

    Each step has exactly one of:
      - timeout_ms: int >= 0   (fixed step)
      - weight: number in (0, 1], optional priority: bool   (weighted step)
    """
    if not path.exists():
        raise InputFormatError(f"file not found: {path}")
    if not path.is_file():
        raise InputFormatError(f"not a file: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InputFormatError(
            f"invalid JSON: {e.msg} (line {e.lineno}, col {e.colno})"
        ) from e

    return scenario_from_dict(raw)


def scenario_from_dict(raw: object) -> Scenario:
    if not isinstance(raw, dict):
        raise InputFormatError("root must be a JSON object")

    name = raw.get("name")
    timeout_ms = raw.get("timeout_ms")
    steps_raw = raw.get("steps")

    if not isinstance(name, str) or not name.strip():
        raise InputFormatError("name must be a non-empty string")
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int):
        raise InputFormatError("timeout_ms must be an int")
    if timeout_ms <= 0:
        raise InputFormatError(f"timeout_ms must be > 0 (got {timeout_ms})")
    if not isinstance(steps_raw, list):
        raise InputFormatError("steps must be an array")

    steps: list[Step] = []
    for i, item in enumerate(steps_raw):
        if not isinstance(item, dict):
            raise InputFormatError(f"steps[{i}] must be an object")
        steps.append(_parse_step(item, label=f"steps[{i}]"))

    return Scenario(name=name, timeout_ms=timeout_ms, steps=tuple(steps))


def _parse_step(raw: dict[str, Any], *, label: str) -> Step:
    has_timeout = "timeout_ms" in raw
    has_weight = "weight" in raw
    if has_timeout == has_weight:
        raise InputFormatError(f"{label} must have exactly one of timeout_ms or weight")
    if has_timeout and "priority" in raw:
        raise InputFormatError(f"{label}.priority only applies to weighted steps")

    step: Step
    if has_timeout:
        step = FixedStep(name=raw.get("name"), timeout_ms=raw["timeout_ms"])
    else:
        step = WeightedStep(name=raw.get("name"), weight=raw["weight"], priority=raw.get("priority", False))

    try:
        validate_step(step, label=label)
    except ConfigurationError as e:
        raise InputFormatError(str(e)) from e

    if isinstance(step, WeightedStep):
        step.weight = float(step.weight)
    return step


def dump_event_stream(events: list[Event]) -> list[dict[str, Any]]:
    """Return a JSON-serializable event stream."""
    out: list[dict[str, Any]] = []
    for e in events:
        d = asdict(e)
        d["type"] = str(e.type.value)
        out.append(d)
    return out
