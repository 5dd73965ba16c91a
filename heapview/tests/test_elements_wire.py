import pytest

from heapview.core.graph.builder import build
from heapview.core.graph.elements import Edge, EdgeStyle, ElementSet, Node, NodeType, identity_key
from heapview.core.runtime.object import HeapObject


def test_wire_records_are_flat_and_nodes_come_first():
    bird = HeapObject(id="b", type_name="app.Bird")
    bird.set_field("name", HeapObject.literal("s", "String", "tweety"))

    wire = build({"bird": bird}).to_wire()

    assert all(set(r) == {"data"} for r in wire)
    kinds = ["source" in r["data"] for r in wire]
    assert kinds == sorted(kinds)
    assert {"id": "b", "label": "Bird", "type": "object", "fontsize": "12px"} in [r["data"] for r in wire]


def test_mode_is_omitted_until_stamped():
    node = Node(id="n", label="x", type=NodeType.LITERAL, fontsize="12px")
    assert "mode" not in node.to_data()
    assert node.with_mode("dark").to_data()["mode"] == "dark"


def test_from_wire_restores_the_same_set():
    expected = ElementSet(
        nodes=(Node(id="a", label="A", type=NodeType.OBJECT, fontsize="12px", mode="dark"),),
        edges=(Edge(id="a_a", source="a", target="a", label="me", style=EdgeStyle.DOTTED, mode="dark"),),
    )

    assert ElementSet.from_wire(expected.to_wire()) == expected


def test_from_wire_rejects_records_without_id():
    with pytest.raises(ValueError):
        ElementSet.from_wire([{"data": {"label": "x"}}])
    with pytest.raises(ValueError):
        ElementSet.from_wire(["nope"])


def test_identity_key_combines_id_and_label():
    node = Node(id="n", label="5", type=NodeType.LITERAL, fontsize="12px")
    assert identity_key(node) == "n|5"
    assert node.identity == "n|5"
    assert node.with_mode("dark").identity == "n|5"
