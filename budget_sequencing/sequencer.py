from __future__ import annotations

import logging
import queue
import threading
from enum import Enum
from typing import Iterable, Sequence

from budget_sequencing.budget import Budget, remaining_millis
from budget_sequencing.clock import DEFAULT_CLOCK, Clock
from budget_sequencing.errors import ConfigurationError, SequencerStateError
from budget_sequencing.event_sink import EventSink
from budget_sequencing.events import EventType
from budget_sequencing.models import Completed, Expired, RunOutcome, RunReport
from budget_sequencing.steps import Step, StepRow, fresh_copy, run_step, validate_step

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"


class _RaceGate:
    """
    Single-resolution signal shared by the worker and the waiting caller.

    The first settle() wins. After that, the worker may not record rows,
    flip executed flags or emit events.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.rows: list[StepRow] = []
        self.outcome: RunOutcome | None = None

    @property
    def settled(self) -> bool:
        return self.outcome is not None

    def settle_completed(self, remaining_ms: int) -> RunOutcome:
        with self.lock:
            if self.outcome is None:
                self.outcome = Completed(remaining_ms=remaining_ms)
            return self.outcome

    def settle_expired(self, steps: Sequence[Step]) -> RunOutcome:
        with self.lock:
            if self.outcome is None:
                self.outcome = Expired(unexecuted=tuple(s.name for s in steps if not s.executed))
            return self.outcome


class Sequencer:
    """
    Runs an ordered list of steps under one root budget.

    run() starts a worker that executes the steps strictly one after another
    and races it against expiry of the root budget. Whichever happens first
    decides the outcome; the other branch is ignored.

    A sequencer runs once per configuration: call configure() or
    register_steps() again before re-running.
    """

    def __init__(
        self,
        name: str,
        total_timeout_ms: int,
        steps: Iterable[Step] = (),
        *,
        clock: Clock | None = None,
        event_sink: EventSink | None = None,
    ) -> None:
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._event_sink = event_sink
        self._name = ""
        self._total_timeout_ms = 0
        self._steps: list[Step] = []
        self._rows: tuple[StepRow, ...] = ()
        self._state = RunState.PENDING
        self.configure(name, total_timeout_ms, steps)

    @property
    def name(self) -> str:
        return self._name

    @property
    def total_timeout_ms(self) -> int:
        return self._total_timeout_ms

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    @property
    def rows(self) -> tuple[StepRow, ...]:
        return self._rows

    def configure(self, name: str, total_timeout_ms: int, steps: Iterable[Step]) -> None:
        """
        Replace the run parameters.

        Steps are copied, so executed flags and rows from any earlier run
        never leak into the next one.
        """
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError("name must be a non-empty string")
        if isinstance(total_timeout_ms, bool) or not isinstance(total_timeout_ms, int):
            raise ConfigurationError("total_timeout_ms must be an int")
        if total_timeout_ms <= 0:
            raise ConfigurationError(f"total_timeout_ms must be > 0 (got {total_timeout_ms})")

        fresh: list[Step] = []
        for i, s in enumerate(steps):
            validate_step(s, label=f"steps[{i}]")
            fresh.append(fresh_copy(s))

        self._name = name
        self._total_timeout_ms = total_timeout_ms
        self._steps = fresh
        self._rows = ()
        self._state = RunState.PENDING

    def register_steps(self, *steps: Step) -> None:
        """Replace the step list (no accumulation across calls)."""
        self.configure(self._name, self._total_timeout_ms, steps)

    def run(self) -> RunReport:
        """
        Run the configured steps once and return the report data.

        Rendering is left to reporting.render_text_report (or any other
        reporter). Expiry of the root budget is an outcome, never an exception.
        """
        if self._state != RunState.PENDING:
            raise SequencerStateError(
                f"sequencer {self._name!r} is {self._state.value}; configure it again before re-running"
            )
        self._state = RunState.RUNNING

        root = Budget.root(self._total_timeout_ms, self._clock)
        gate = _RaceGate()
        self._emit(EventType.RUN_STARTED, total_timeout_ms=self._total_timeout_ms)
        logger.debug("run %s started: root=%dms steps=%d", self._name, self._total_timeout_ms, len(self._steps))

        # Single slot: the worker posts exactly once, either its outcome or its exception.
        done: queue.Queue[RunOutcome | BaseException] = queue.Queue(maxsize=1)
        # Daemon: an overrunning step never holds the process open at exit.
        # The worker is not interrupted mid-step; it stops at the next step boundary.
        worker = threading.Thread(
            target=self._work,
            args=(root, gate, done),
            name="sequencer-worker",
            daemon=True,
        )
        try:
            worker.start()
            try:
                result = done.get(timeout=root.remaining_seconds())
            except queue.Empty:
                outcome = gate.settle_expired(self._steps)
            else:
                if isinstance(result, BaseException):
                    raise result
                outcome = result
        finally:
            root.release()

        with gate.lock:
            self._rows = tuple(gate.rows)

        if isinstance(outcome, Completed):
            self._state = RunState.COMPLETED
            self._emit(EventType.RUN_COMPLETED, remaining_ms=outcome.remaining_ms)
            logger.info("run %s completed with %dms left", self._name, outcome.remaining_ms)
        else:
            self._state = RunState.EXPIRED
            self._emit(EventType.RUN_EXPIRED, unexecuted=list(outcome.unexecuted))
            logger.info("run %s expired; unexecuted: %s", self._name, ", ".join(outcome.unexecuted) or "-")

        return RunReport(
            name=self._name,
            total_timeout_ms=self._total_timeout_ms,
            rows=self._rows,
            outcome=outcome,
        )

    def _work(self, root: Budget, gate: _RaceGate, done: queue.Queue[RunOutcome | BaseException]) -> None:
        try:
            outcome = self._run_steps(root, gate)
        except BaseException as e:
            if gate.settled:
                # Nobody is waiting on the queue anymore.
                logger.exception("worker failed after run %s was settled", self._name)
            done.put(e)
            return
        done.put(outcome)

    def _run_steps(self, root: Budget, gate: _RaceGate) -> RunOutcome:
        for s in self._steps:
            if gate.settled:
                break
            row = run_step(s, root, self._clock)
            with gate.lock:
                if gate.settled:
                    break
                s.mark_executed()
                gate.rows.append(row)
                self._emit(
                    EventType.STEP_FINISHED,
                    step=row.step_name,
                    allotted_ms=row.allotted_ms,
                    remaining_parent_ms=row.remaining_parent_ms,
                )
        return gate.settle_completed(remaining_millis(root))

    def _emit(self, event_type: EventType, step: str | None = None, **data: object) -> None:
        if self._event_sink is not None:
            self._event_sink.emit(event_type, step=step, **data)
