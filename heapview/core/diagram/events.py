from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import Any, Dict, Optional
from uuid import UUID, uuid4


def _json_safe(value: Any) -> Any:
    """Convert event field values into JSON-safe representations."""

    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


@dataclass(frozen=True)
class DiagramEvent:
    """Immutable record of something that happened to a diagram session."""

    event_id: UUID = field(default_factory=uuid4, init=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC), init=False)

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"event_type": self.event_type}
        for f in fields(self):
            payload[f.name] = _json_safe(getattr(self, f.name))
        return payload

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(event_id={self.event_id}, "
            f"event_type={self.event_type}, created_at={self.created_at})"
        )


@dataclass(frozen=True)
class SnapshotAppliedEvent(DiagramEvent):
    """A snapshot was built and reconciled onto the surface."""

    nodes: int
    edges: int
    added: int
    removed: int
    layout: str


@dataclass(frozen=True)
class SnapshotSkippedEvent(DiagramEvent):
    """A snapshot failed to build; the previous diagram was kept."""

    reason: str
    object_id: Optional[str] = None


@dataclass(frozen=True)
class PresentationChangedEvent(DiagramEvent):
    mode: str


@dataclass(frozen=True)
class PinnedChangedEvent(DiagramEvent):
    pinned: bool
