from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Deque, Optional, Tuple

from .events import DiagramEvent


@dataclass
class DiagramContext:
    """
    Bounded, append-only event log of one diagram session.

    Invariants
    - Events are appended in non-decreasing timestamp order
    - Only the newest `max_events` are retained
    - External views are immutable tuples

    The lock guards the log only: drivers append from their own thread while
    the diagram service reads.
    """

    session_id: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    max_events: int = 200

    _events: Deque[DiagramEvent] = field(init=False, repr=False)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        self._events = deque(maxlen=max(1, int(self.max_events)))

    def emit_event(self, event: DiagramEvent) -> "DiagramContext":
        """
        Append an event.

        Raises
        - TypeError: if event is not a DiagramEvent.
        - RuntimeError: if its timestamp is older than the last recorded one.
        """

        if not isinstance(event, DiagramEvent):
            raise TypeError("Only DiagramEvent instances may be emitted")

        with self._lock:
            if self._events and event.created_at < self._events[-1].created_at:
                raise RuntimeError(
                    f"Event timestamp regression detected ({event.created_at} < {self._events[-1].created_at})"
                )
            self._events.append(event)

        return self

    def get_events(self, limit: Optional[int] = None) -> Tuple[DiagramEvent, ...]:
        """Return the retained events, oldest first; `limit` keeps the newest N."""

        with self._lock:
            events = tuple(self._events)
        if limit is not None and limit >= 0:
            events = events[len(events) - min(limit, len(events)):]
        return events
