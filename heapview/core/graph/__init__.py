"""Heap graph snapshots.

Turns the bindings visible at an evaluation point into an ElementSet: one node
per reachable object, one merged edge per referencing pair.
"""

from .builder import build, is_local_name, is_reserved_name
from .classify import LabelStrategy, classify, font_size_for, label_for
from .elements import VIRTUAL_ROOT_ID, Edge, EdgeStyle, Element, ElementSet, Node, NodeType, identity_key
from .exceptions import HeapDescriptionError, HeapviewError, SurfaceClosedError, TraversalFault

__all__ = [
    "build",
    "is_local_name",
    "is_reserved_name",
    "LabelStrategy",
    "classify",
    "font_size_for",
    "label_for",
    "VIRTUAL_ROOT_ID",
    "Edge",
    "EdgeStyle",
    "Element",
    "ElementSet",
    "Node",
    "NodeType",
    "identity_key",
    "HeapDescriptionError",
    "HeapviewError",
    "SurfaceClosedError",
    "TraversalFault",
]
