from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable; invalid values use the default."""

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except Exception:
        return int(default)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return raw in {"1", "true", "TRUE", "yes", "YES", "on", "ON"}


@dataclass(frozen=True, slots=True)
class DiagramConfig:
    """Settings shared by the drivers and the diagram service.

    Environment:
    - HEAPVIEW_HOST (default 127.0.0.1)
    - HEAPVIEW_PORT (default 3000)
    - HEAPVIEW_PINNED (default 1)
    - HEAPVIEW_MODE (light | dark, default light)
    - HEAPVIEW_TICK_MS (default 17)
    - HEAPVIEW_EVENT_LOG_SIZE (default 200)
    - HEAPVIEW_LOG_LEVEL (default INFO)
    """

    host: str = "127.0.0.1"
    port: int = 3000
    pinned: bool = True
    mode: str = "light"
    tick_ms: int = 17
    event_log_size: int = 200
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "DiagramConfig":
        mode = os.environ.get("HEAPVIEW_MODE", "light").strip().lower()
        return DiagramConfig(
            host=os.environ.get("HEAPVIEW_HOST", "").strip() or "127.0.0.1",
            port=_env_int("HEAPVIEW_PORT", 3000),
            pinned=_env_bool("HEAPVIEW_PINNED", True),
            mode=mode if mode in {"light", "dark"} else "light",
            tick_ms=max(1, _env_int("HEAPVIEW_TICK_MS", 17)),
            event_log_size=max(1, _env_int("HEAPVIEW_EVENT_LOG_SIZE", 200)),
            log_level=(os.environ.get("HEAPVIEW_LOG_LEVEL", "").strip() or "INFO").upper(),
        )

    def with_overrides(self, **overrides: Any) -> "DiagramConfig":
        """Apply CLI overrides; None values keep the current setting."""

        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"
