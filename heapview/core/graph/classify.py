"""Presentation classification for runtime objects.

Which strategy labels an object depends only on its type name and whether it
is null, so classification is a plain function rather than a class hierarchy.
"""

from __future__ import annotations

from enum import Enum

from heapview.core.runtime.object import ObjectKind, RuntimeObjectRef

from .elements import NodeType
from .exceptions import TraversalFault

NULL_LABEL = "null"
LOCK = "🔒"

FONT_SMALL = "8px"
FONT_MEDIUM = "10px"
FONT_LARGE = "12px"

# Compound built-ins whose printed form fully describes them.
SHORTENED_TYPES = frozenset(
    {
        "datetime.date",
        "datetime.datetime",
        "datetime.time",
        "datetime.timedelta",
        "builtins.range",
        "builtins.slice",
        "builtins.complex",
        "builtins.bytes",
        "builtins.function",
        "builtins.builtin_function_or_method",
        "builtins.method",
        "builtins.type",
        "builtins.module",
        "decimal.Decimal",
        "fractions.Fraction",
        # language-neutral names for described heaps
        "Date",
        "Pair",
        "Range",
        "Closure",
    }
)

TEXT_TYPES = frozenset({"builtins.str", "String"})
VALUE_TYPES = frozenset({"builtins.int", "builtins.float", "builtins.bool", "Number", "Boolean"})


class LabelStrategy(str, Enum):
    NULL = "null"
    SHORTENED = "shortened"
    TEXT = "text"
    VALUE = "value"
    KIND_NAME = "kind_name"


def classify(kind: ObjectKind, type_name: str) -> LabelStrategy:
    if kind is ObjectKind.NULL:
        return LabelStrategy.NULL
    if type_name in SHORTENED_TYPES:
        return LabelStrategy.SHORTENED
    if type_name in TEXT_TYPES:
        return LabelStrategy.TEXT
    if type_name in VALUE_TYPES:
        return LabelStrategy.VALUE
    return LabelStrategy.KIND_NAME


def is_shortened(obj: RuntimeObjectRef) -> bool:
    return classify(obj.kind, obj.type_name) is LabelStrategy.SHORTENED


def label_for(obj: RuntimeObjectRef) -> str:
    """Compute the node label; call-out failures become TraversalFault."""

    strategy = classify(obj.kind, obj.type_name)
    if strategy is LabelStrategy.NULL:
        return NULL_LABEL
    if strategy is LabelStrategy.TEXT:
        return f'"{obj.inner_value}"'
    if strategy is LabelStrategy.VALUE:
        return f"{obj.inner_value}"
    try:
        if strategy is LabelStrategy.SHORTENED:
            return str(obj.to_display_string())
        return str(obj.kind_name())
    except Exception as e:
        raise TraversalFault(obj.id, obj.type_name, e) from e


def node_type_for(obj: RuntimeObjectRef) -> NodeType:
    if obj.kind is ObjectKind.NULL:
        return NodeType.NULL
    if obj.kind is ObjectKind.LITERAL:
        return NodeType.LITERAL
    return NodeType.OBJECT


def font_size_for(label: str) -> str:
    if len(label) > 12:
        return FONT_SMALL
    if len(label) > 5:
        return FONT_MEDIUM
    return FONT_LARGE


def binding_label(name: str, constant: bool) -> str:
    return f"{name}{LOCK}" if constant else name
