from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class DiagramOut(BaseModel):
    """The diagram currently displayed, in wire format."""

    session_id: str
    elements: List[Dict[str, Any]] = Field(default_factory=list)
    pinned: bool = True
    mode: str = "light"


class SettingsIn(BaseModel):
    """User-facing toggles. Omitted fields are left unchanged."""

    pinned: Optional[bool] = None
    mode: Optional[str] = None


class EventOut(BaseModel):
    """One diagram session event."""

    event_type: str
    event_id: str
    created_at: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class ClientSettingsMessage(BaseModel):
    """Toggle request received from a browser over the WebSocket."""

    type: Literal["settings"] = "settings"
    pinned: Optional[bool] = None
    mode: Optional[str] = None
