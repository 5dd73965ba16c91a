from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

VIRTUAL_ROOT_ID = "REPL"
ROOT_EDGE_WIDTH = 1.5
EDGE_WIDTH = 1.0


class NodeType(str, Enum):
    LITERAL = "literal"
    OBJECT = "object"
    NULL = "null"
    VIRTUAL_ROOT = "virtualRoot"


class EdgeStyle(str, Enum):
    SOLID = "solid"
    DOTTED = "dotted"


@dataclass(frozen=True)
class Node:
    """One distinct runtime object (or the virtual root) in a snapshot."""

    id: str
    label: str
    type: NodeType
    fontsize: str
    mode: Optional[str] = None

    @property
    def identity(self) -> str:
        return identity_key(self)

    def with_mode(self, mode: Optional[str]) -> "Node":
        return replace(self, mode=mode)

    def to_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "fontsize": self.fontsize,
        }
        if self.mode is not None:
            data["mode"] = self.mode
        return data


@dataclass(frozen=True)
class Edge:
    """One or more merged bindings between an ordered pair of nodes."""

    id: str
    source: str
    target: str
    label: str
    style: EdgeStyle = EdgeStyle.SOLID
    width: float = EDGE_WIDTH
    mode: Optional[str] = None

    @property
    def identity(self) -> str:
        return identity_key(self)

    def with_mode(self, mode: Optional[str]) -> "Edge":
        return replace(self, mode=mode)

    def to_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "label": self.label,
            "style": self.style.value,
            "width": self.width,
        }
        if self.mode is not None:
            data["mode"] = self.mode
        return data


Element = Union[Node, Edge]


def identity_key(element: Element) -> str:
    """Cross-snapshot identity: id plus current label."""

    return f"{element.id}|{element.label}"


@dataclass(frozen=True)
class ElementSet:
    """Node list + edge list describing one snapshot. Never mutated in place."""

    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()

    @classmethod
    def empty(cls) -> "ElementSet":
        return cls()

    def __iter__(self) -> Iterator[Element]:
        yield from self.nodes
        yield from self.edges

    def __len__(self) -> int:
        return len(self.nodes) + len(self.edges)

    def node(self, node_id: str) -> Optional[Node]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def identities(self) -> frozenset:
        return frozenset(identity_key(e) for e in self)

    def with_mode(self, mode: Optional[str]) -> "ElementSet":
        return ElementSet(
            nodes=tuple(n.with_mode(mode) for n in self.nodes),
            edges=tuple(e.with_mode(mode) for e in self.edges),
        )

    def to_wire(self) -> List[Dict[str, Any]]:
        """Flat list of {"data": {...}} records, nodes first."""

        return [{"data": e.to_data()} for e in self]

    @classmethod
    def from_wire(cls, records: Iterable[Mapping[str, Any]]) -> "ElementSet":
        """Parse the flat wire list; edges are the records with source/target."""

        nodes: List[Node] = []
        edges: List[Edge] = []
        for record in records:
            data = record.get("data") if isinstance(record, Mapping) else None
            if not isinstance(data, Mapping) or "id" not in data:
                raise ValueError(f"invalid element record: {record!r}")
            if "source" in data and "target" in data:
                edges.append(
                    Edge(
                        id=str(data["id"]),
                        source=str(data["source"]),
                        target=str(data["target"]),
                        label=str(data.get("label", "")),
                        style=EdgeStyle(data.get("style", EdgeStyle.SOLID.value)),
                        width=float(data.get("width", EDGE_WIDTH)),
                        mode=data.get("mode"),
                    )
                )
            else:
                nodes.append(
                    Node(
                        id=str(data["id"]),
                        label=str(data.get("label", "")),
                        type=NodeType(data.get("type", NodeType.OBJECT.value)),
                        fontsize=str(data.get("fontsize", "")),
                        mode=data.get("mode"),
                    )
                )
        return cls(nodes=tuple(nodes), edges=tuple(edges))
