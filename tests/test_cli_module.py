from __future__ import annotations

import json
import os
import subprocess
import sys
import time
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]


def _run_module(*args: str) -> subprocess.CompletedProcess[str]:
    cmd = [sys.executable, "-m", "budget_sequencing", *args]
    env = os.environ.copy()
    env["PYTHONPATH"] = str(REPO_ROOT) + os.pathsep + env.get("PYTHONPATH", "")
    return subprocess.run(
        cmd, text=True, capture_output=True, cwd=REPO_ROOT, env=env
    )


def test_cli_help_succeeds() -> None:
    p = _run_module("--help")
    assert p.returncode == 0, p.stderr
    combined = (p.stdout or "") + (p.stderr or "")
    assert "Timeout Budget Sequencing Simulator" in combined


def test_cli_priority_demo_completes() -> None:
    p = _run_module("run", "--demo", "priority")
    assert p.returncode == 0, p.stderr
    out = p.stdout or ""
    assert "SIMULATOR:priority" in out
    assert "Done with time left" in out
    assert out.index("Function A") < out.index("Function B") < out.index("Function C")


def test_cli_expired_demo_lists_unexecuted_functions() -> None:
    p = _run_module("run", "--demo", "expired")
    assert p.returncode == 0, p.stderr
    out = p.stdout or ""
    assert "Time out reached with unexecuted function:" in out
    assert "- Function A\n- Function B\n- Function C\n" in out


def test_cli_rejects_demo_and_scenario_together(tmp_path: Path) -> None:
    path = tmp_path / "s.json"
    path.write_text(json.dumps({"name": "x", "timeout_ms": 10, "steps": []}), encoding="utf-8")
    p = _run_module("run", "--demo", "priority", "--scenario", str(path))
    assert p.returncode == 2
    assert "choose exactly one" in (p.stderr or "")


def test_cli_invalid_scenario_exits_2(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"name": "x", "timeout_ms": 10, "steps": [{"name": "A", "weight": 2}]}), encoding="utf-8")
    p = _run_module("run", "--scenario", str(path))
    assert p.returncode == 2
    assert "ERROR: invalid scenario" in (p.stderr or "")


def test_cli_scenario_json_output_and_events_out(tmp_path: Path) -> None:
    scenario = tmp_path / "s.json"
    scenario.write_text(
        json.dumps(
            {
                "name": "file-run",
                "timeout_ms": 500,
                "steps": [
                    {"name": "fetch", "timeout_ms": 10},
                    {"name": "rank", "weight": 0.2},
                ],
            }
        ),
        encoding="utf-8",
    )
    events_out = tmp_path / "events.json"

    p = _run_module("run", "--scenario", str(scenario), "--json", "--events-out", str(events_out))

    assert p.returncode == 0, p.stderr
    report = json.loads(p.stdout)
    assert report["name"] == "file-run"
    assert [r["step"] for r in report["rows"]] == ["fetch", "rank"]
    assert report["outcome"]["kind"] == "completed"

    events = json.loads(events_out.read_text(encoding="utf-8"))
    assert events[0]["type"] == "RUN_STARTED"
    assert events[-1]["type"] == "RUN_COMPLETED"


def test_cli_exits_promptly_after_expiry(tmp_path: Path) -> None:
    scenario = tmp_path / "slow.json"
    scenario.write_text(
        json.dumps({"name": "slow", "timeout_ms": 50, "steps": [{"name": "A", "timeout_ms": 5000}]}),
        encoding="utf-8",
    )

    started = time.monotonic()
    p = _run_module("run", "--scenario", str(scenario))
    elapsed = time.monotonic() - started

    assert p.returncode == 0, p.stderr
    assert "- A\n" in (p.stdout or "")
    # The overrunning step is abandoned, not waited for at interpreter exit.
    assert elapsed < 3.0
