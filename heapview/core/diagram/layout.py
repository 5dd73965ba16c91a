from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, MutableMapping, Set, Tuple

import networkx as nx

Position = Tuple[float, float]


def seed_position(node_id: str, *, spread: float = 300.0) -> Position:
    """Deterministic pseudo-random position for a node with no placed neighbour."""

    digest = hashlib.sha256(node_id.encode("utf-8")).digest()
    x = int.from_bytes(digest[:4], "big") / 0xFFFFFFFF
    y = int.from_bytes(digest[4:8], "big") / 0xFFFFFFFF
    return ((x - 0.5) * spread, (y - 0.5) * spread)


def layout_graph(positions: Mapping[str, Position], edges: Iterable[Tuple[str, str]]) -> nx.Graph:
    """Undirected graph of the positioned nodes; edges to unplaced nodes are dropped."""

    graph = nx.Graph()
    graph.add_nodes_from(positions)
    graph.add_edges_from((s, t) for s, t in edges if s != t and s in positions and t in positions)
    return graph


@dataclass(frozen=True, slots=True)
class ForceLayout:
    """Spring embedder on top of `networkx.spring_layout`.

    Only the nodes in `movable` are displaced. Every other positioned node is
    passed as `fixed`: it keeps its coordinates but still pushes and pulls the
    movable ones. Coordinates are never rescaled, so a pinned diagram keeps
    its frame between passes.
    """

    ideal_edge_length: float = 80.0
    iterations: int = 50
    seed: int = 42

    def run(
        self,
        positions: MutableMapping[str, Position],
        movable: Iterable[str],
        edges: Iterable[Tuple[str, str]],
    ) -> None:
        moving: List[str] = [n for n in movable if n in positions]
        # spring_layout collapses a single node onto the centre
        if not moving or len(positions) < 2:
            return

        graph = layout_graph(positions, edges)
        moving_set: Set[str] = set(moving)
        fixed = [n for n in graph if n not in moving_set]

        laid_out = nx.spring_layout(
            graph,
            k=self.ideal_edge_length,
            pos=dict(positions),
            fixed=fixed or None,
            iterations=self.iterations,
            scale=None,
            seed=self.seed,
        )
        for n in moving:
            x, y = laid_out[n]
            positions[n] = (float(x), float(y))


def place_new_nodes(
    positions: MutableMapping[str, Position],
    new_nodes: Iterable[str],
    edges: Iterable[Tuple[str, str]],
) -> None:
    """Give unplaced nodes a starting point next to a placed neighbour, if any."""

    neighbours: Dict[str, List[str]] = {}
    for s, t in edges:
        neighbours.setdefault(s, []).append(t)
        neighbours.setdefault(t, []).append(s)

    for n in new_nodes:
        if n in positions:
            continue
        anchor = next((m for m in neighbours.get(n, []) if m in positions), None)
        if anchor is None:
            positions[n] = seed_position(n)
        else:
            ax, ay = positions[anchor]
            ox, oy = seed_position(n, spread=40.0)
            positions[n] = (ax + ox, ay + oy)
