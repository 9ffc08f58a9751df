from __future__ import annotations

import json
from pathlib import Path

import pytest

from budget_sequencing.errors import ConfigurationError
from budget_sequencing.event_sink import InMemoryEventSink
from budget_sequencing.events import EventType
from budget_sequencing.scenario_io import (
    InputFormatError,
    dump_event_stream,
    load_scenario,
    scenario_from_dict,
)
from budget_sequencing.steps import FixedStep, WeightedStep
from tests._support.manual_clock import ManualClock


def _write(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_load_scenario_happy_path(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        {
            "name": "checkout",
            "timeout_ms": 600,
            "steps": [
                {"name": "auth", "timeout_ms": 20},
                {"name": "search", "weight": 0.5, "priority": True},
                {"name": "rank", "weight": 1},
            ],
        },
    )

    scenario = load_scenario(path)

    assert scenario.name == "checkout"
    assert scenario.timeout_ms == 600
    assert scenario.steps == (
        FixedStep("auth", 20),
        WeightedStep("search", 0.5, priority=True),
        WeightedStep("rank", 1.0, priority=False),
    )


def test_scenario_builds_a_runnable_sequencer() -> None:
    scenario = scenario_from_dict(
        {
            "name": "demo",
            "timeout_ms": 600,
            "steps": [
                {"name": "A", "timeout_ms": 20},
                {"name": "B", "weight": 0.5, "priority": True},
                {"name": "C", "weight": 0.5, "priority": True},
            ],
        }
    )
    sink = InMemoryEventSink()

    report = scenario.build_sequencer(clock=ManualClock(), event_sink=sink).run()

    assert report.outcome.kind == "completed"
    dumped = dump_event_stream(sink.events)
    assert [d["type"] for d in dumped] == [
        "RUN_STARTED",
        "STEP_FINISHED",
        "STEP_FINISHED",
        "STEP_FINISHED",
        "RUN_COMPLETED",
    ]
    assert dumped[1] == {
        "seq": 2,
        "type": EventType.STEP_FINISHED.value,
        "step": "A",
        "data": {"allotted_ms": 20, "remaining_parent_ms": 580},
    }
    json.dumps(dumped)


@pytest.mark.parametrize(
    "payload, message",
    [
        ([], "root must be a JSON object"),
        ({"timeout_ms": 10, "steps": []}, "name must be"),
        ({"name": "x", "timeout_ms": 0, "steps": []}, "timeout_ms must be > 0"),
        ({"name": "x", "timeout_ms": "10", "steps": []}, "timeout_ms must be an int"),
        ({"name": "x", "timeout_ms": 10}, "steps must be an array"),
        ({"name": "x", "timeout_ms": 10, "steps": ["A"]}, r"steps\[0\] must be an object"),
        ({"name": "x", "timeout_ms": 10, "steps": [{"name": "A"}]}, "exactly one of"),
        (
            {"name": "x", "timeout_ms": 10, "steps": [{"name": "A", "timeout_ms": 1, "weight": 0.5}]},
            "exactly one of",
        ),
        ({"name": "x", "timeout_ms": 10, "steps": [{"name": "A", "timeout_ms": -1}]}, ">= 0"),
        ({"name": "x", "timeout_ms": 10, "steps": [{"name": "A", "weight": 1.5}]}, r"in \(0, 1\]"),
        ({"name": "x", "timeout_ms": 10, "steps": [{"name": "A", "weight": 0}]}, r"in \(0, 1\]"),
        (
            {"name": "x", "timeout_ms": 10, "steps": [{"name": "A", "weight": 0.5, "priority": 1}]},
            "priority must be a bool",
        ),
        (
            {"name": "x", "timeout_ms": 10, "steps": [{"name": "A", "timeout_ms": 5, "priority": True}]},
            "only applies to weighted",
        ),
    ],
)
def test_scenario_validation_errors(payload: object, message: str) -> None:
    with pytest.raises(InputFormatError, match=message):
        scenario_from_dict(payload)


def test_load_scenario_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(InputFormatError, match="file not found"):
        load_scenario(tmp_path / "nope.json")


def test_load_scenario_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(InputFormatError, match="invalid JSON"):
        load_scenario(path)


def test_step_value_errors_come_from_step_validation() -> None:
    with pytest.raises(InputFormatError, match=r"steps\[1\]\.name must be a non-empty string") as info:
        scenario_from_dict(
            {
                "name": "x",
                "timeout_ms": 10,
                "steps": [{"name": "A", "timeout_ms": 1}, {"name": " ", "weight": 0.5}],
            }
        )
    assert isinstance(info.value.__cause__, ConfigurationError)
