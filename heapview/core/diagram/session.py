from __future__ import annotations

import logging
import queue
from threading import Lock
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from heapview.core.graph.builder import build
from heapview.core.graph.exceptions import TraversalFault
from heapview.core.runtime.object import RuntimeObjectRef
from heapview.core.runtime.python_heap import bindings_from_namespace, constant_names

from .config import DiagramConfig
from .context import DiagramContext
from .events import (
    DiagramEvent,
    PinnedChangedEvent,
    PresentationChangedEvent,
    SnapshotAppliedEvent,
    SnapshotSkippedEvent,
)
from .reconciler import DiagramReconciler, ReconcileResult
from .surface import DiagramSurface, InMemorySurface

log = logging.getLogger("heapview.diagram")


class DiagramSession:
    """One live diagram for one running program.

    Drivers (REPL loop, frame ticker) call `refresh` after each unit of
    execution; the diagram service reads `wire()` and subscribes to updates.
    A session-level lock serializes refreshes with toggles arriving from the
    service so the reconciler only ever sees one caller at a time.
    """

    def __init__(
        self,
        *,
        config: Optional[DiagramConfig] = None,
        surface: Optional[DiagramSurface] = None,
        session_id: Optional[str] = None,
    ):
        self.config = config or DiagramConfig.from_env()
        self.reconciler = DiagramReconciler(
            surface if surface is not None else InMemorySurface(),
            pinned=self.config.pinned,
            mode=self.config.mode,
        )
        self.context = DiagramContext(
            session_id=session_id or uuid4().hex,
            max_events=self.config.event_log_size,
        )
        self._lock = Lock()
        self._subscribers: List[queue.Queue] = []
        self._subscribers_lock = Lock()

    @property
    def session_id(self) -> str:
        return self.context.session_id

    def refresh(
        self,
        root_bindings: Mapping[str, RuntimeObjectRef],
        *,
        constants: Iterable[str] = (),
    ) -> Optional[ReconcileResult]:
        """Snapshot and reconcile. Returns None when the snapshot was skipped."""

        with self._lock:
            try:
                elements = build(root_bindings, constants=constants)
            except TraversalFault as e:
                log.warning(
                    "snapshot_skipped",
                    extra={"session_id": self.session_id, "object_id": e.object_id, "error": str(e)},
                )
                self._record(SnapshotSkippedEvent(reason=str(e), object_id=e.object_id))
                return None

            result = self.reconciler.reconcile(elements)
            self._record(
                SnapshotAppliedEvent(
                    nodes=len(elements.nodes),
                    edges=len(elements.edges),
                    added=result.added,
                    removed=result.removed,
                    layout=result.layout,
                )
            )
            message = self._update_message()

        self._publish(message)
        return result

    def refresh_namespace(
        self, namespace: Mapping[str, Any], *, extra_constants: Iterable[str] = ()
    ) -> Optional[ReconcileResult]:
        """Refresh from a Python namespace such as a console's locals."""

        snapshot = dict(namespace)
        return self.refresh(
            bindings_from_namespace(snapshot),
            constants=constant_names(snapshot, list(extra_constants)),
        )

    def set_pinned(self, pinned: bool) -> None:
        with self._lock:
            self.reconciler.set_pinned(pinned)
            self._record(PinnedChangedEvent(pinned=bool(pinned)))

    def set_presentation_mode(self, mode: str) -> None:
        with self._lock:
            self.reconciler.set_presentation_mode(mode)
            self._record(PresentationChangedEvent(mode=mode))
            message = self._update_message()
        self._publish(message)

    def wire(self) -> List[Dict[str, Any]]:
        return self.reconciler.previous.to_wire()

    def options(self) -> Dict[str, Any]:
        return {
            "host": self.config.host,
            "port": self.config.port,
            "pinned": self.reconciler.pinned,
            "mode": self.reconciler.mode,
        }

    def subscribe(self) -> queue.Queue:
        q: queue.Queue = queue.Queue()
        with self._subscribers_lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        with self._subscribers_lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    @property
    def subscriber_count(self) -> int:
        with self._subscribers_lock:
            return len(self._subscribers)

    def _update_message(self) -> Dict[str, Any]:
        return {"type": "updateDiagram", "elements": self.wire()}

    def _publish(self, message: Dict[str, Any]) -> None:
        with self._subscribers_lock:
            targets = list(self._subscribers)
        for q in targets:
            q.put(message)

    def _record(self, event: DiagramEvent) -> None:
        self.context.emit_event(event)
