from __future__ import annotations

import dataclasses
import re
import sys
from collections import deque
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence

from .object import ObjectKind

_ORDERED_SEQUENCES = (list, tuple, deque)
_UNORDERED_SEQUENCES = (set, frozenset)
_CONSTANT_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")
# vowel-initial names read with a consonant sound ("a User", "a Euro")
_YOO_PREFIXES = ("uni", "use", "usa", "usu", "uti", "ure", "eu")


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _is_standard_module(module: str) -> bool:
    top = (module or "").split(".", 1)[0]
    return top == "builtins" or top in sys.stdlib_module_names


def _article(name: str) -> str:
    lower = name.lower()
    if lower.startswith(_YOO_PREFIXES):
        return "a"
    return "an" if lower[:1] and lower[0] in "aeiou" else "a"


def _is_namedtuple(value: Any) -> bool:
    return isinstance(value, tuple) and hasattr(type(value), "_fields")


def _slot_names(cls: type) -> List[str]:
    out: List[str] = []
    for klass in cls.__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name not in out and not _is_dunder(name):
                out.append(name)
    return out


class PythonObjectRef:
    """Runtime view over a live Python object.

    Identity is `id()` of the wrapped object, so two wrappers around the same
    object are the same node. Standard-library instances expose no fields
    (their internals are not part of the user's program) except for dict
    entries and the builtin collections' elements.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Any):
        self._value = value

    @property
    def value(self) -> Any:
        return self._value

    @property
    def id(self) -> str:
        return str(id(self._value))

    @property
    def type_name(self) -> str:
        cls = type(self._value)
        return f"{cls.__module__}.{cls.__qualname__}"

    @property
    def kind(self) -> ObjectKind:
        if self._value is None:
            return ObjectKind.NULL
        if _is_standard_module(type(self._value).__module__):
            return ObjectKind.LITERAL
        return ObjectKind.OBJECT

    @property
    def inner_value(self) -> Any:
        return self._value

    @property
    def is_sequence(self) -> bool:
        if _is_namedtuple(self._value):
            return False
        return isinstance(self._value, _ORDERED_SEQUENCES + _UNORDERED_SEQUENCES)

    @property
    def is_ordered(self) -> bool:
        return isinstance(self._value, _ORDERED_SEQUENCES)

    @property
    def constant_fields(self) -> FrozenSet[str]:
        value = self._value
        if _is_namedtuple(value):
            return frozenset(type(value)._fields)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            params = getattr(type(value), "__dataclass_params__", None)
            if params is not None and params.frozen:
                return frozenset(f.name for f in dataclasses.fields(value))
        return frozenset()

    def fields(self) -> Mapping[str, "PythonObjectRef"]:
        value = self._value
        out: Dict[str, PythonObjectRef] = {}

        if isinstance(value, dict):
            for key, item in value.items():
                # "[1]" for the int key 1 so it cannot shadow the str key "1"
                name = key if isinstance(key, str) else f"[{key!r}]"
                while name in out:
                    name += "'"
                out[name] = PythonObjectRef(item)
            return out

        if _is_namedtuple(value):
            for name in type(value)._fields:
                out[name] = PythonObjectRef(getattr(value, name))
            return out

        if self.kind is not ObjectKind.OBJECT:
            return out

        try:
            attrs = vars(value)
        except TypeError:
            attrs = {}
        for name, item in attrs.items():
            if _is_dunder(name):
                continue
            out[name] = PythonObjectRef(item)

        for name in _slot_names(type(value)):
            if name in out:
                continue
            try:
                out[name] = PythonObjectRef(getattr(value, name))
            except AttributeError:
                # unset slot
                continue
        return out

    def elements(self) -> Sequence["PythonObjectRef"]:
        if not self.is_sequence:
            return []
        return [PythonObjectRef(item) for item in self._value]

    def to_display_string(self) -> str:
        return str(self._value)

    def kind_name(self) -> str:
        cls = type(self._value)
        name = cls.__name__
        if _is_standard_module(cls.__module__):
            return name
        return f"{_article(name)} {name}"

    def __repr__(self) -> str:
        return f"PythonObjectRef(id={self.id}, type={self.type_name})"


def bindings_from_namespace(namespace: Mapping[str, Any]) -> Dict[str, PythonObjectRef]:
    """Wrap every binding of an evaluation namespace (e.g. a REPL's locals)."""

    return {name: PythonObjectRef(value) for name, value in namespace.items()}


def constant_names(namespace: Mapping[str, Any], extra: Optional[Sequence[str]] = None) -> FrozenSet[str]:
    """Names treated as constant bindings: ALL_CAPS module-level names."""

    names = {name for name in namespace if _CONSTANT_NAME.match(name)}
    names.update(extra or ())
    return frozenset(names)
