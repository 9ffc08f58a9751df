from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from budget_sequencing.event_sink import InMemoryEventSink
from budget_sequencing.reporting import render_text_report
from budget_sequencing.scenario_io import (
    InputFormatError,
    Scenario,
    dump_event_stream,
    load_scenario,
)
from budget_sequencing.steps import FixedStep, WeightedStep


def _demo_scenarios() -> dict[str, Scenario]:
    return {
        # 600 -> fixed 20 -> 290 -> 145: completes with ~145ms left.
        "priority": Scenario(
            name="priority",
            timeout_ms=600,
            steps=(
                FixedStep("Function A", 20),
                WeightedStep("Function B", 0.5, priority=True),
                WeightedStep("Function C", 0.5, priority=True),
            ),
        ),
        # The first fixed step alone outlives the root budget.
        "expired": Scenario(
            name="expired",
            timeout_ms=50,
            steps=(
                FixedStep("Function A", 100),
                FixedStep("Function B", 10),
                WeightedStep("Function C", 0.5),
            ),
        ),
        # Function C's 10% share is under the priority floor, so it takes everything left.
        "escalation": Scenario(
            name="escalation",
            timeout_ms=300,
            steps=(
                FixedStep("Function A", 100),
                WeightedStep("Function B", 0.5),
                WeightedStep("Function C", 0.1, priority=True),
                FixedStep("Function D", 10),
            ),
        ),
    }


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _cmd_run(args: argparse.Namespace) -> int:
    chosen = sum(1 for v in [bool(args.demo), bool(args.scenario)] if v)
    if chosen != 1:
        print("ERROR: choose exactly one of --demo or --scenario.", file=sys.stderr)
        return 2

    _configure_logging(str(args.log_level))

    if args.scenario:
        try:
            scenario = load_scenario(Path(str(args.scenario)))
        except InputFormatError as e:
            print(f"ERROR: invalid scenario: {e}", file=sys.stderr)
            return 2
    else:
        demos = _demo_scenarios()
        scenario = demos[str(args.demo)]

    sink = InMemoryEventSink()
    report = scenario.build_sequencer(event_sink=sink).run()

    if args.events_out:
        out_path = Path(str(args.events_out))
        out_path.write_text(json.dumps(dump_event_stream(sink.events), indent=2), encoding="utf-8")

    if args.json:
        sys.stdout.write(json.dumps(report.to_dict(), indent=2) + "\n")
    else:
        sys.stdout.write(render_text_report(report))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="budget_sequencing",
        description=(
            "Timeout Budget Sequencing Simulator.\n"
            "\n"
            "Splits a root timeout across fixed and weighted steps and reports\n"
            "whether the sequence finishes before the root budget expires."
        ),
    )

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a scenario and print the budget table.")
    run.add_argument(
        "--demo",
        type=str,
        choices=sorted(_demo_scenarios()),
        help="Run a built-in scenario.",
    )
    run.add_argument("--scenario", type=str, help="Run a scenario JSON file.")
    run.add_argument("--events-out", type=str, default=None, help="Write the event stream as JSON.")
    run.add_argument("--json", action="store_true", help="Print the run report as JSON instead of a table.")
    run.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr diagnostics.",
    )
    run.set_defaults(func=_cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
