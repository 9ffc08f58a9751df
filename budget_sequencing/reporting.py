from __future__ import annotations

from typing import Sequence

from budget_sequencing.models import Completed, RunReport

RULE = "====================="
HEADER = ("Name", "Max Timeout(ms)", "Remaining(ms)")


def _table_lines(cells: Sequence[Sequence[str]]) -> list[str]:
    """
    Align cells into columns, each padded to its widest cell plus one space
    and terminated by '|'.
    """
    if not cells:
        return []
    widths = [max(len(row[i]) for row in cells) + 1 for i in range(len(cells[0]))]
    return ["".join(f"{cell.ljust(w)}|" for cell, w in zip(row, widths)) for row in cells]


def report_cells(report: RunReport) -> list[tuple[str, str, str]]:
    """Header, Init row and one row per executed step, as strings."""
    cells: list[tuple[str, str, str]] = [HEADER]
    cells.append(("Init", str(report.total_timeout_ms), str(report.total_timeout_ms)))
    for r in report.rows:
        cells.append((r.step_name, str(r.allotted_ms), str(r.remaining_parent_ms)))
    return cells


def render_text_report(report: RunReport) -> str:
    """
    Render a run the way the simulator prints it:

      =====================
      SIMULATOR:<name>
      Name |Max Timeout(ms) |Remaining(ms) |
      Init |600             |600           |
      ...
      Done with time left 145 ms
      =====================

    An expired run lists the steps that never completed instead of the
    "Done" line.
    """
    out: list[str] = [RULE, f"SIMULATOR:{report.name}"]
    out.extend(_table_lines(report_cells(report)))

    outcome = report.outcome
    if isinstance(outcome, Completed):
        out.append(f"Done with time left {outcome.remaining_ms} ms")
    else:
        out.append("Time out reached with unexecuted function: ")
        for name in outcome.unexecuted:
            out.append(f"- {name}")

    out.append(RULE)
    return "\n".join(out) + "\n"
