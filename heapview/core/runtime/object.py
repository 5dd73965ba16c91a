from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Protocol, Sequence


class ObjectKind(str, Enum):
    LITERAL = "literal"
    OBJECT = "object"
    NULL = "null"


class RuntimeObjectRef(Protocol):
    """
    Read-only view of one live object in the evaluated program.

    Implementations are supplied by the runtime being observed. The graph
    builder only reads them; the two call-outs (to_display_string, kind_name)
    may run user code and may raise.
    """

    @property
    def id(self) -> str:
        ...

    @property
    def kind(self) -> ObjectKind:
        ...

    @property
    def type_name(self) -> str:
        ...

    @property
    def is_sequence(self) -> bool:
        ...

    @property
    def is_ordered(self) -> bool:
        ...

    @property
    def constant_fields(self) -> FrozenSet[str]:
        ...

    @property
    def inner_value(self) -> Any:
        ...

    def fields(self) -> Mapping[str, "RuntimeObjectRef"]:
        ...

    def elements(self) -> Sequence["RuntimeObjectRef"]:
        ...

    def to_display_string(self) -> str:
        ...

    def kind_name(self) -> str:
        ...


@dataclass(eq=False)
class HeapObject:
    """
    Explicitly constructed runtime object.

    Used for heaps described as data (tests, `heapview render`). Fields and
    elements are mutable so cyclic structures can be wired after creation.

    `display` and `kind_label` stand in for the runtime call-outs; either may
    be a callable so failures can be simulated.
    """

    id: str
    type_name: str
    kind: ObjectKind = ObjectKind.OBJECT
    inner_value: Any = None
    field_refs: Dict[str, "HeapObject"] = field(default_factory=dict)
    element_refs: Optional[List["HeapObject"]] = None
    is_ordered: bool = True
    constant_fields: FrozenSet[str] = frozenset()
    display: Optional[str | Callable[[], str]] = None
    kind_label: Optional[str | Callable[[], str]] = None

    @classmethod
    def null(cls, object_id: str = "null") -> "HeapObject":
        return cls(id=object_id, type_name="null", kind=ObjectKind.NULL)

    @classmethod
    def literal(cls, object_id: str, type_name: str, value: Any) -> "HeapObject":
        return cls(id=object_id, type_name=type_name, kind=ObjectKind.LITERAL, inner_value=value)

    @property
    def is_sequence(self) -> bool:
        return self.element_refs is not None

    def fields(self) -> Mapping[str, "HeapObject"]:
        return self.field_refs

    def elements(self) -> Sequence["HeapObject"]:
        return self.element_refs or []

    def set_field(self, name: str, value: "HeapObject", *, constant: bool = False) -> "HeapObject":
        self.field_refs[name] = value
        if constant:
            self.constant_fields = self.constant_fields | {name}
        return self

    def to_display_string(self) -> str:
        if callable(self.display):
            return self.display()
        if self.display is not None:
            return self.display
        return str(self.inner_value)

    def kind_name(self) -> str:
        if callable(self.kind_label):
            return self.kind_label()
        if self.kind_label is not None:
            return self.kind_label
        return self.type_name.rsplit(".", 1)[-1]
