from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from budget_sequencing.events import Event, EventType


class EventSink(ABC):
    """
    Consumer of structured events.
    The sequencer must be able to run with event_sink=None (no events).
    """

    @abstractmethod
    def emit(self, event_type: EventType, step: str | None = None, **data: Any) -> None: ...


@dataclass
class InMemoryEventSink(EventSink):
    """
    Simple sink for tests/demos.
    Owns seq numbering; emit() may be called from the sequencer's worker thread.
    """

    events: list[Event] = field(default_factory=list)
    _seq: int = field(default=0, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def emit(self, event_type: EventType, step: str | None = None, **data: Any) -> None:
        with self._lock:
            self._seq += 1
            self.events.append(
                Event(
                    seq=self._seq,
                    type=event_type,
                    step=step,
                    data=dict(data),
                )
            )

    def of_type(self, event_type: EventType) -> list[Event]:
        return [e for e in self.events if e.type == event_type]
