"""heapview diagram service.

FastAPI layer that delivers diagram snapshots to browsers over HTTP and a
WebSocket, and accepts the user-facing toggles.
"""

from .server import create_app, port_available, serve_in_background  # noqa: F401
