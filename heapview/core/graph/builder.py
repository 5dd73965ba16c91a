from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Tuple

from heapview.core.runtime.object import RuntimeObjectRef

from .classify import binding_label, font_size_for, is_shortened, label_for, node_type_for
from .elements import (
    EDGE_WIDTH,
    ROOT_EDGE_WIDTH,
    VIRTUAL_ROOT_ID,
    Edge,
    EdgeStyle,
    ElementSet,
    Node,
    NodeType,
)

log = logging.getLogger("heapview.graph")

RESERVED_ROOT_NAMES = frozenset({"true", "false", "null", "True", "False", "None"})
QUALIFIER_SEPARATOR = "."


@dataclass(frozen=True)
class _Binding:
    """One field/element reference, before merging."""

    source: str
    target: str
    label: str
    style: EdgeStyle
    width: float = EDGE_WIDTH

    @property
    def binding_id(self) -> str:
        return f"{self.source}_{self.target}"


def is_reserved_name(name: str) -> bool:
    """Built-in/reserved globals are never used as traversal entry points."""

    return name in RESERVED_ROOT_NAMES or (name.startswith("__") and name.endswith("__"))


def is_local_name(name: str) -> bool:
    return QUALIFIER_SEPARATOR not in name


def _expand(
    root: RuntimeObjectRef,
    nodes: List[Node],
    bindings: List[_Binding],
) -> None:
    """Depth-first expansion guarded by the ids on the current path.

    The path set travels with each pending object (never shared between
    siblings), so a cycle stops at the repeated id while an object reached by
    two independent paths is expanded from both.
    """

    stack: List[Tuple[RuntimeObjectRef, FrozenSet[str]]] = [(root, frozenset())]
    while stack:
        obj, path = stack.pop()
        if obj.id in path:
            continue

        label = label_for(obj)
        nodes.append(Node(id=obj.id, label=label, type=node_type_for(obj), fontsize=font_size_for(label)))
        if is_shortened(obj):
            continue

        inner_path = path | {obj.id}
        children: List[RuntimeObjectRef] = []

        constants = obj.constant_fields
        for name, child in obj.fields().items():
            bindings.append(
                _Binding(obj.id, child.id, binding_label(name, name in constants), EdgeStyle.SOLID)
            )
            children.append(child)

        if obj.is_sequence:
            ordered = obj.is_ordered
            for i, item in enumerate(obj.elements()):
                bindings.append(_Binding(obj.id, item.id, str(i) if ordered else "", EdgeStyle.DOTTED))
                children.append(item)

        for child in reversed(children):
            stack.append((child, inner_path))


def _unique_nodes(nodes: Iterable[Node]) -> List[Node]:
    seen: Dict[str, Node] = {}
    for n in nodes:
        seen.setdefault(n.id, n)
    return list(seen.values())


def _merge_bindings(bindings: Iterable[_Binding]) -> List[Edge]:
    """Fold bindings into one edge per (source, target), order-preserving."""

    distinct: Dict[Tuple[str, str, str, EdgeStyle], _Binding] = {}
    for b in bindings:
        distinct.setdefault((b.source, b.target, b.label, b.style), b)

    merged: Dict[Tuple[str, str], Edge] = {}
    for b in distinct.values():
        key = (b.source, b.target)
        existing = merged.get(key)
        if existing is None:
            merged[key] = Edge(
                id=b.binding_id,
                source=b.source,
                target=b.target,
                label=b.label,
                style=b.style,
                width=b.width,
            )
        else:
            merged[key] = Edge(
                id=f"{existing.id}_{b.binding_id}",
                source=existing.source,
                target=existing.target,
                label=f"{existing.label}, {b.label}",
                style=existing.style,
                width=existing.width,
            )
    return list(merged.values())


def build(
    root_bindings: Mapping[str, RuntimeObjectRef],
    *,
    constants: Iterable[str] = (),
) -> ElementSet:
    """Snapshot the object graph reachable from the given root bindings.

    - Local (unqualified) roots are linked from the virtual root node, labeled
      with the binding name; names in `constants` get the lock suffix.
    - The virtual root node is included only if some edge leaves it.

    Raises
    - TraversalFault: a label call-out failed; no partial result is returned.
    """

    constant_names = frozenset(constants)
    roots = [(name, obj) for name, obj in root_bindings.items() if not is_reserved_name(name)]

    nodes: List[Node] = []
    bindings: List[_Binding] = []

    for name, obj in roots:
        if is_local_name(name):
            bindings.append(
                _Binding(
                    VIRTUAL_ROOT_ID,
                    obj.id,
                    binding_label(name, name in constant_names),
                    EdgeStyle.SOLID,
                    ROOT_EDGE_WIDTH,
                )
            )

    for _, obj in roots:
        _expand(obj, nodes, bindings)

    unique = _unique_nodes(nodes)
    edges = _merge_bindings(bindings)

    if any(e.source == VIRTUAL_ROOT_ID for e in edges):
        unique.append(
            Node(
                id=VIRTUAL_ROOT_ID,
                label=VIRTUAL_ROOT_ID,
                type=NodeType.VIRTUAL_ROOT,
                fontsize=font_size_for(VIRTUAL_ROOT_ID),
            )
        )

    log.debug(
        "heap_snapshot_built",
        extra={"roots": len(roots), "nodes": len(unique), "edges": len(edges)},
    )
    return ElementSet(nodes=tuple(unique), edges=tuple(edges))
