from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Sequence

from heapview.core.graph.elements import Edge, Element, ElementSet, Node, identity_key
from heapview.core.graph.exceptions import SurfaceClosedError

from .surface import DiagramSurface

log = logging.getLogger("heapview.diagram")

MODES = ("light", "dark")


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """What one reconcile pass did to the surface."""

    added: int
    removed: int
    layout: str
    ready: int = 0


def ready_for_layout(batch: Sequence[Element], present_node_ids: FrozenSet[str]) -> List[Element]:
    """Nodes of the batch, plus edges whose endpoints are both placed.

    An endpoint counts as placed when it was already on the surface or is a
    node of the same batch.
    """

    placed = set(present_node_ids)
    placed.update(e.id for e in batch if isinstance(e, Node))
    return [
        e
        for e in batch
        if isinstance(e, Node) or (isinstance(e, Edge) and e.source in placed and e.target in placed)
    ]


class DiagramReconciler:
    """
    Applies successive snapshots to a live diagram surface.

    Responsibilities
    - Diff the next ElementSet against the previous one by identity key
    - Remove stale elements and add new ones, never mutating in place
    - Choose between a full layout pass and an incremental one
    - Re-home the whole diagram when the presentation mode changes

    Invariants
    - `previous` is replaced only after a clean pass
    - The surface is owned exclusively by this reconciler
    """

    def __init__(self, surface: DiagramSurface, *, pinned: bool = True, mode: str = "light"):
        if mode not in MODES:
            raise ValueError(f"unknown presentation mode: {mode!r}")
        self._surface = surface
        self._pinned = bool(pinned)
        self._mode = mode
        self._previous = ElementSet.empty()

    @property
    def surface(self) -> DiagramSurface:
        return self._surface

    @property
    def previous(self) -> ElementSet:
        return self._previous

    @property
    def pinned(self) -> bool:
        return self._pinned

    @property
    def mode(self) -> str:
        return self._mode

    def set_pinned(self, pinned: bool) -> None:
        self._pinned = bool(pinned)

    def reconcile(self, next_elements: ElementSet) -> ReconcileResult:
        next_elements = next_elements.with_mode(self._mode)
        surface = self._surface

        next_keys = next_elements.identities()
        prev_keys = self._previous.identities()

        stale_ids = {e.id for e in self._previous if identity_key(e) not in next_keys}
        removed = surface.remove_where(lambda e: e.id in stale_ids) if stale_ids else 0

        # Removing a node drops its edges from the surface too; re-add those.
        on_surface = surface.element_ids()
        to_add: List[Element] = [
            e for e in next_elements if identity_key(e) not in prev_keys or e.id not in on_surface
        ]

        layout = "none"
        ready: List[Element] = []
        if to_add:
            was_empty = len(surface) == 0
            ready = ready_for_layout(to_add, surface.node_ids())
            surface.add(to_add)
            layout = "full" if was_empty or not self._pinned else "incremental"
        elif not self._pinned and len(surface):
            # unpinned diagrams are recomputed on every pass
            layout = "full"

        if layout == "full":
            surface.layout(surface.elements())
        elif layout == "incremental":
            surface.layout(ready)

        self._previous = next_elements
        result = ReconcileResult(added=len(to_add), removed=removed, layout=layout, ready=len(ready))
        log.debug(
            "diagram_reconciled",
            extra={"added": result.added, "removed": result.removed, "layout": result.layout},
        )
        return result

    def set_presentation_mode(self, mode: str) -> None:
        """Stamp every element with `mode` and rebuild the whole diagram.

        Raises
        - ValueError: unknown mode
        - SurfaceClosedError: the surface can no longer be mutated
        """

        if mode not in MODES:
            raise ValueError(f"unknown presentation mode: {mode!r}")

        restamped = self._previous.with_mode(mode)
        try:
            self._surface.clear()
            self._surface.add(list(restamped))
            self._surface.layout(self._surface.elements())
        except SurfaceClosedError:
            log.error("diagram_rebuild_failed", extra={"mode": mode})
            raise

        self._mode = mode
        self._previous = restamped

