from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """
    Event vocabulary for a sequencer run.
    Exactly one of RUN_COMPLETED / RUN_EXPIRED closes a run.
    """

    RUN_STARTED = "RUN_STARTED"
    STEP_FINISHED = "STEP_FINISHED"
    RUN_COMPLETED = "RUN_COMPLETED"
    RUN_EXPIRED = "RUN_EXPIRED"


@dataclass(frozen=True, slots=True)
class Event:
    """
    A structured, orderable fact emitted by the sequencer (optionally).

    seq is owned by the sink.
    """

    seq: int
    type: EventType
    step: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
