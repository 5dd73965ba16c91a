import pytest

from heapview.core.diagram.reconciler import DiagramReconciler, ready_for_layout
from heapview.core.diagram.surface import InMemorySurface
from heapview.core.graph.builder import build
from heapview.core.graph.elements import Edge, Node, NodeType
from heapview.core.graph.exceptions import SurfaceClosedError
from heapview.core.runtime.object import HeapObject


def _bird_heap(age=3):
    bird = HeapObject(id="b", type_name="app.Bird")
    bird.set_field("age", HeapObject.literal("n", "Number", age))
    return {"bird": bird}


def _node(node_id):
    return Node(id=node_id, label=node_id, type=NodeType.OBJECT, fontsize="12px")


def test_first_snapshot_adds_everything_with_full_layout():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface)
    elements = build(_bird_heap())

    result = rec.reconcile(elements)

    assert result.added == len(elements)
    assert result.removed == 0
    assert result.layout == "full"
    assert surface.element_ids() == frozenset(e.id for e in elements)
    assert set(surface.positions) == {"b", "n", "REPL"}


def test_unchanged_snapshot_touches_nothing():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface)
    rec.reconcile(build(_bird_heap()))
    runs = len(surface.layout_runs)

    result = rec.reconcile(build(_bird_heap()))

    assert (result.added, result.removed, result.layout) == (0, 0, "none")
    assert len(surface.layout_runs) == runs


def test_relabeled_node_is_removed_then_readded_with_its_edges():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface)
    rec.reconcile(build(_bird_heap(age=3)))

    result = rec.reconcile(build(_bird_heap(age=4)))

    # the old node and its incoming edge, then both back with the new label
    assert result.removed == 2
    assert result.added == 2
    assert surface.get("n").label == "4"
    assert surface.get("b_n") is not None
    assert surface.element_ids() == frozenset(e.id for e in rec.previous)


def test_removed_binding_disappears_from_surface():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface)
    heap = _bird_heap()
    rec.reconcile(build(heap))

    heap["bird"].field_refs.pop("age")
    result = rec.reconcile(build(heap))

    assert result.added == 0
    assert surface.get("n") is None
    assert surface.get("b_n") is None
    assert result.removed == 2


def test_pinned_update_keeps_existing_positions():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface, pinned=True)
    heap = _bird_heap()
    rec.reconcile(build(heap))
    before = dict(surface.positions)

    heap["bird"].set_field("name", HeapObject.literal("s", "String", "tweety"))
    result = rec.reconcile(build(heap))

    assert result.layout == "incremental"
    assert "s" in surface.positions
    for node_id, pos in before.items():
        assert surface.positions[node_id] == pos
    last = surface.layout_runs[-1]
    assert last.node_ids == ("s",)
    assert last.edge_ids == ("b_s",)


def test_unpinned_update_relayouts_everything():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface, pinned=False)
    heap = _bird_heap()
    rec.reconcile(build(heap))

    heap["bird"].set_field("name", HeapObject.literal("s", "String", "tweety"))
    result = rec.reconcile(build(heap))

    assert result.layout == "full"
    assert set(surface.layout_runs[-1].node_ids) == {"b", "n", "s", "REPL"}


def test_toggling_pinned_takes_effect_on_next_change():
    rec = DiagramReconciler(InMemorySurface())
    heap = _bird_heap()
    rec.reconcile(build(heap))

    rec.set_pinned(False)
    heap["bird"].set_field("name", HeapObject.literal("s", "String", "x"))

    assert rec.reconcile(build(heap)).layout == "full"


def test_readiness_gate_requires_both_endpoints():
    batch = [
        _node("a"),
        Edge(id="a_b", source="a", target="b", label="x"),
        Edge(id="a_c", source="a", target="c", label="y"),
    ]

    ready = ready_for_layout(batch, frozenset({"c"}))

    assert [e.id for e in ready] == ["a", "a_c"]


def test_mode_is_stamped_on_reconciled_elements():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface, mode="dark")
    rec.reconcile(build(_bird_heap()))

    assert all(e.mode == "dark" for e in surface.elements())


def test_mode_switch_rebuilds_whole_diagram():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface)
    rec.reconcile(build(_bird_heap()))
    ids = surface.element_ids()

    rec.set_presentation_mode("dark")

    assert rec.mode == "dark"
    assert surface.element_ids() == ids
    assert all(e.mode == "dark" for e in surface.elements())
    assert set(surface.layout_runs[-1].node_ids) == {"b", "n", "REPL"}

    # a later unchanged snapshot does not churn just because of the stamp
    result = rec.reconcile(build(_bird_heap()))
    assert (result.added, result.removed) == (0, 0)


def test_unknown_mode_is_rejected():
    rec = DiagramReconciler(InMemorySurface())
    with pytest.raises(ValueError):
        rec.set_presentation_mode("sepia")
    with pytest.raises(ValueError):
        DiagramReconciler(InMemorySurface(), mode="sepia")


def test_closed_surface_fails_mode_switch_and_keeps_state():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface)
    rec.reconcile(build(_bird_heap()))
    surface.close()

    with pytest.raises(SurfaceClosedError):
        rec.set_presentation_mode("dark")

    assert rec.mode == "light"
    assert all(e.mode == "light" for e in rec.previous)


def test_empty_snapshot_clears_diagram():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface)
    rec.reconcile(build(_bird_heap()))

    result = rec.reconcile(build({}))

    assert len(surface) == 0
    assert result.layout == "none"


def test_rebinding_a_name_removes_old_object_before_adding_new_one():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface)
    rec.reconcile(build({"x": HeapObject(id="o1", type_name="app.Thing")}))

    result = rec.reconcile(build({"x": HeapObject(id="o2", type_name="app.Thing")}))

    ids = surface.element_ids()
    assert "o1" not in ids
    assert "REPL_o1" not in ids
    assert {"o2", "REPL_o2", "REPL"} <= ids
    assert result.removed == 2
    assert result.added == 2
    assert "o1" not in surface.positions


def test_unpinned_relayouts_even_when_nothing_is_added():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface, pinned=False)
    heap = _bird_heap()
    heap["bird"].set_field("name", HeapObject.literal("s", "String", "tweety"))
    rec.reconcile(build(heap))
    runs = len(surface.layout_runs)

    unchanged = rec.reconcile(build(heap))
    assert unchanged.layout == "full"
    assert unchanged.added == 0

    heap["bird"].field_refs.pop("name")
    removal_only = rec.reconcile(build(heap))

    assert removal_only.layout == "full"
    assert removal_only.added == 0
    assert removal_only.removed == 2
    assert len(surface.layout_runs) == runs + 2
    assert set(surface.layout_runs[-1].node_ids) == {"b", "n", "REPL"}


def test_unpinned_empty_diagram_needs_no_layout():
    surface = InMemorySurface()
    rec = DiagramReconciler(surface, pinned=False)

    assert rec.reconcile(build({})).layout == "none"
    assert surface.layout_runs == []
