from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Protocol, Sequence, Tuple

from heapview.core.graph.elements import Edge, Element, Node
from heapview.core.graph.exceptions import SurfaceClosedError

from .layout import ForceLayout, Position, place_new_nodes


class DiagramSurface(Protocol):
    """
    Live node/edge collection plus layout engine.

    Operations are synchronous from the reconciler's point of view even if a
    rendering surface animates afterwards.
    """

    def add(self, elements: Sequence[Element]) -> None:
        """
        Add elements to the data set. Edges may reference nodes added in the
        same call.
        """
        ...

    def remove_where(self, predicate: Callable[[Element], bool]) -> int:
        """
        Remove matching elements (and edges attached to removed nodes).
        Returns the number of elements removed.
        """
        ...

    def layout(self, elements: Sequence[Element]) -> None:
        """
        Run the layout over the given subset; other nodes keep their position.
        """
        ...

    def clear(self) -> None:
        ...

    def elements(self) -> List[Element]:
        ...

    def node_ids(self) -> FrozenSet[str]:
        ...

    def element_ids(self) -> FrozenSet[str]:
        ...

    def __len__(self) -> int:
        ...


@dataclass(frozen=True, slots=True)
class LayoutRun:
    """Record of one layout pass."""

    node_ids: Tuple[str, ...]
    edge_ids: Tuple[str, ...]


@dataclass
class InMemorySurface:
    """Dictionary-backed diagram surface with a force-directed layout.

    Removing a node also removes the edges attached to it, as graph drawing
    libraries do. Once closed, every operation raises SurfaceClosedError.
    """

    engine: ForceLayout = field(default_factory=ForceLayout)
    positions: Dict[str, Position] = field(default_factory=dict)
    layout_runs: List[LayoutRun] = field(default_factory=list)

    _nodes: Dict[str, Node] = field(default_factory=dict, init=False, repr=False)
    _edges: Dict[str, Edge] = field(default_factory=dict, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def _check_open(self) -> None:
        if self._closed:
            raise SurfaceClosedError("diagram surface is closed")

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def add(self, elements: Sequence[Element]) -> None:
        self._check_open()
        for e in elements:
            if isinstance(e, Node):
                self._nodes[e.id] = e
        for e in elements:
            if isinstance(e, Edge):
                self._edges[e.id] = e

    def remove_where(self, predicate: Callable[[Element], bool]) -> int:
        self._check_open()
        removed_nodes = [nid for nid, n in self._nodes.items() if predicate(n)]
        for nid in removed_nodes:
            del self._nodes[nid]
            self.positions.pop(nid, None)

        gone = set(removed_nodes)
        removed_edges = [
            eid
            for eid, e in self._edges.items()
            if predicate(e) or e.source in gone or e.target in gone
        ]
        for eid in removed_edges:
            del self._edges[eid]
        return len(removed_nodes) + len(removed_edges)

    def layout(self, elements: Sequence[Element]) -> None:
        self._check_open()
        node_ids = [e.id for e in elements if isinstance(e, Node) and e.id in self._nodes]
        edges = [e for e in elements if isinstance(e, Edge) and e.id in self._edges]

        anchors = [(e.source, e.target) for e in self._edges.values()]
        place_new_nodes(self.positions, node_ids, anchors)
        self.engine.run(self.positions, node_ids, [(e.source, e.target) for e in edges])
        self.layout_runs.append(LayoutRun(tuple(node_ids), tuple(e.id for e in edges)))

    def clear(self) -> None:
        self._check_open()
        self._nodes.clear()
        self._edges.clear()
        self.positions.clear()

    def elements(self) -> List[Element]:
        return [*self._nodes.values(), *self._edges.values()]

    def node_ids(self) -> FrozenSet[str]:
        return frozenset(self._nodes)

    def element_ids(self) -> FrozenSet[str]:
        return frozenset(self._nodes) | frozenset(self._edges)

    def get(self, element_id: str) -> Element | None:
        return self._nodes.get(element_id) or self._edges.get(element_id)

    def __len__(self) -> int:
        return len(self._nodes) + len(self._edges)
