from heapview.core.diagram.layout import ForceLayout, layout_graph, place_new_nodes, seed_position
from heapview.core.diagram.surface import InMemorySurface
from heapview.core.graph.elements import Edge, Node, NodeType


def test_seed_position_is_deterministic_and_bounded():
    assert seed_position("abc") == seed_position("abc")
    assert seed_position("abc") != seed_position("abd")
    x, y = seed_position("abc", spread=10.0)
    assert -5.0 <= x <= 5.0
    assert -5.0 <= y <= 5.0


def test_layout_moves_only_movable_nodes():
    positions = {"a": (0.0, 0.0), "b": (1.0, 0.0), "c": (500.0, 500.0)}

    ForceLayout(iterations=20).run(positions, ["b"], [("a", "b")])

    assert positions["a"] == (0.0, 0.0)
    assert positions["c"] == (500.0, 500.0)
    assert positions["b"] != (1.0, 0.0)


def test_layout_with_nothing_movable_is_a_no_op():
    positions = {"a": (0.0, 0.0)}
    ForceLayout().run(positions, ["missing"], [])
    assert positions == {"a": (0.0, 0.0)}


def test_new_nodes_start_next_to_a_placed_neighbour():
    positions = {"a": (1000.0, 1000.0)}

    place_new_nodes(positions, ["b", "c"], [("a", "b")])

    bx, by = positions["b"]
    assert abs(bx - 1000.0) <= 20.0
    assert abs(by - 1000.0) <= 20.0
    assert positions["c"] == seed_position("c")


def test_surface_removal_cascades_to_attached_edges():
    surface = InMemorySurface()
    surface.add(
        [
            Node(id="a", label="a", type=NodeType.OBJECT, fontsize="12px"),
            Node(id="b", label="b", type=NodeType.OBJECT, fontsize="12px"),
            Edge(id="a_b", source="a", target="b", label="x"),
        ]
    )
    surface.layout(surface.elements())

    removed = surface.remove_where(lambda e: e.id == "b")

    assert removed == 2
    assert surface.element_ids() == frozenset({"a"})
    assert "b" not in surface.positions


def test_full_layout_keeps_diagram_coordinates():
    positions = {"a": (0.0, 0.0), "b": (1000.0, 0.0)}

    ForceLayout().run(positions, ["a", "b"], [("a", "b")])

    (ax, ay), (bx, by) = positions["a"], positions["b"]
    distance = ((ax - bx) ** 2 + (ay - by) ** 2) ** 0.5
    # pulled together, but not squashed into a unit box
    assert 10.0 < distance < 1000.0
    assert all(isinstance(c, float) for c in (ax, ay, bx, by))


def test_single_node_is_left_where_it_was_placed():
    positions = {"a": (12.0, -7.0)}
    ForceLayout().run(positions, ["a"], [])
    assert positions == {"a": (12.0, -7.0)}


def test_edges_to_unplaced_nodes_are_ignored():
    graph = layout_graph({"a": (0.0, 0.0), "b": (1.0, 1.0)}, [("a", "b"), ("a", "zz"), ("b", "b")])

    assert set(graph.nodes) == {"a", "b"}
    assert list(graph.edges) == [("a", "b")]
