from __future__ import annotations

from typing import Any, Dict, FrozenSet, Mapping, Tuple

from heapview.core.graph.exceptions import HeapDescriptionError

from .object import HeapObject, ObjectKind


def load_heap_description(doc: Mapping[str, Any]) -> Tuple[Dict[str, HeapObject], FrozenSet[str]]:
    """Build root bindings from a heap described as data.

    Format:
      {
        "objects": {
          "<id>": {"type": "app.Bird", "kind": "object",
                   "fields": {"name": "<id>"}, "constants": ["name"],
                   "elements": ["<id>", ...], "ordered": true,
                   "value": 5, "display": "...", "kind_name": "a Bird"}
        },
        "roots": {"bird": "<id>"},
        "constants": ["bird"]
      }

    References are object ids. Two passes are needed so objects can refer to
    each other (including themselves).

    Raises
    - HeapDescriptionError: unknown kind, dangling reference, or bad shape.
    """

    if not isinstance(doc, Mapping):
        raise HeapDescriptionError("heap description must be a JSON object")

    raw_objects = doc.get("objects") or {}
    raw_roots = doc.get("roots") or {}
    if not isinstance(raw_objects, Mapping) or not isinstance(raw_roots, Mapping):
        raise HeapDescriptionError("'objects' and 'roots' must be JSON objects")

    objects: Dict[str, HeapObject] = {}
    for object_id, entry in raw_objects.items():
        if not isinstance(entry, Mapping):
            raise HeapDescriptionError(f"object {object_id!r} must be a JSON object")
        try:
            kind = ObjectKind(str(entry.get("kind", "object")))
        except ValueError:
            raise HeapDescriptionError(f"object {object_id!r} has unknown kind {entry.get('kind')!r}")
        objects[str(object_id)] = HeapObject(
            id=str(object_id),
            type_name=str(entry.get("type", "null" if kind is ObjectKind.NULL else "Object")),
            kind=kind,
            inner_value=entry.get("value"),
            element_refs=[] if "elements" in entry else None,
            is_ordered=bool(entry.get("ordered", True)),
            constant_fields=frozenset(str(c) for c in (entry.get("constants") or [])),
            display=entry.get("display"),
            kind_label=entry.get("kind_name"),
        )

    def resolve(ref: Any, where: str) -> HeapObject:
        try:
            return objects[str(ref)]
        except KeyError:
            raise HeapDescriptionError(f"{where} references unknown object {ref!r}")

    for object_id, entry in raw_objects.items():
        obj = objects[str(object_id)]
        for name, ref in (entry.get("fields") or {}).items():
            obj.field_refs[str(name)] = resolve(ref, f"field {object_id}.{name}")
        if obj.element_refs is not None:
            for i, ref in enumerate(entry.get("elements") or []):
                obj.element_refs.append(resolve(ref, f"element {object_id}[{i}]"))

    roots = {str(name): resolve(ref, f"root {name!r}") for name, ref in raw_roots.items()}
    constants = frozenset(str(c) for c in (doc.get("constants") or []))
    return roots, constants
