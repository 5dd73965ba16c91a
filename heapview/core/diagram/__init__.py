"""Live diagram maintenance.

The reconciler applies successive snapshots to a diagram surface without
disturbing the viewer's mental map; the session ties it to a driver.
"""

from .config import DiagramConfig
from .context import DiagramContext
from .reconciler import DiagramReconciler, ReconcileResult, ready_for_layout
from .session import DiagramSession
from .surface import DiagramSurface, InMemorySurface, LayoutRun

__all__ = [
    "DiagramConfig",
    "DiagramContext",
    "DiagramReconciler",
    "ReconcileResult",
    "ready_for_layout",
    "DiagramSession",
    "DiagramSurface",
    "InMemorySurface",
    "LayoutRun",
]
