from __future__ import annotations

import asyncio
import logging
import queue
import socket
import threading
import time
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from heapview.api.middleware import AccessLogMiddleware, RequestIdMiddleware
from heapview.api.models import ClientSettingsMessage, DiagramOut, EventOut, SettingsIn
from heapview.core.diagram.reconciler import MODES
from heapview.core.diagram.session import DiagramSession
from heapview.core.graph.exceptions import SurfaceClosedError

log = logging.getLogger("heapview.api")

MAX_EVENTS = 500


def _apply_settings(session: DiagramSession, pinned: Optional[bool], mode: Optional[str]) -> None:
    """Apply toggles, raising HTTPException on invalid input."""

    if mode is not None and mode not in MODES:
        raise HTTPException(status_code=400, detail="invalid_mode")
    if pinned is not None:
        session.set_pinned(pinned)
    if mode is not None and mode != session.reconciler.mode:
        try:
            session.set_presentation_mode(mode)
        except SurfaceClosedError:
            raise HTTPException(status_code=503, detail="surface_closed")


def _diagram_out(session: DiagramSession) -> DiagramOut:
    return DiagramOut(
        session_id=session.session_id,
        elements=session.wire(),
        pinned=session.reconciler.pinned,
        mode=session.reconciler.mode,
    )


def create_app(session: Optional[DiagramSession] = None) -> FastAPI:
    """Create the diagram service for one session."""

    session = session or DiagramSession()

    log.setLevel(session.config.log_level)

    app = FastAPI(title="heapview", version="0.1")
    app.state.session = session

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(AccessLogMiddleware)

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "session_id": session.session_id,
            "subscribers": session.subscriber_count,
        }

    @app.get("/diagram", response_model=DiagramOut)
    def get_diagram() -> DiagramOut:
        """Current element set in wire format plus toggle state."""

        return _diagram_out(session)

    @app.put("/settings", response_model=DiagramOut)
    def put_settings(body: SettingsIn) -> DiagramOut:
        """Change pinned mode and/or presentation mode.

        A presentation change rebuilds the whole diagram and is pushed to
        every connected client.
        """

        _apply_settings(session, body.pinned, body.mode)
        return _diagram_out(session)

    @app.get("/events", response_model=List[EventOut])
    def list_events(limit: int = 50) -> List[EventOut]:
        """Most recent session events, oldest first (bounded)."""

        lim = max(1, min(MAX_EVENTS, int(limit)))
        return [
            EventOut(
                event_type=ev.event_type,
                event_id=str(ev.event_id),
                created_at=ev.created_at.isoformat(),
                payload=ev.to_payload(),
            )
            for ev in session.context.get_events(lim)
        ]

    @app.websocket("/ws")
    async def diagram_socket(websocket: WebSocket) -> None:
        """Push `initDiagram`, then the current diagram, then every update."""

        await websocket.accept()
        updates = session.subscribe()
        log.debug("diagram_client_connected", extra={"session_id": session.session_id})

        async def incoming() -> None:
            while True:
                text = await websocket.receive_text()
                try:
                    msg = ClientSettingsMessage.model_validate_json(text)
                except ValidationError:
                    await websocket.send_json({"type": "error", "detail": "invalid_message"})
                    continue
                try:
                    await asyncio.to_thread(_apply_settings, session, msg.pinned, msg.mode)
                except HTTPException as e:
                    await websocket.send_json({"type": "error", "detail": e.detail})

        async def outgoing() -> None:
            while True:
                try:
                    message = await asyncio.to_thread(updates.get, True, 1.0)
                except queue.Empty:
                    continue
                await websocket.send_json(message)

        try:
            await websocket.send_json({"type": "initDiagram", "options": session.options()})
            await websocket.send_json({"type": "updateDiagram", "elements": session.wire()})

            tasks = [asyncio.create_task(incoming()), asyncio.create_task(outgoing())]
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    log.error("diagram_socket_error", extra={"error": repr(exc)})
        except WebSocketDisconnect:
            pass
        finally:
            session.unsubscribe(updates)
            log.debug("diagram_client_disconnected", extra={"session_id": session.session_id})

    return app


def port_available(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, int(port)))
        except OSError:
            return False
    return True


def serve_in_background(
    app: FastAPI,
    *,
    host: str,
    port: int,
    log_level: str = "warning",
    startup_timeout: float = 5.0,
) -> Tuple[Any, threading.Thread]:
    """Run the service with uvicorn on a daemon thread.

    Returns (server, thread); call `server.should_exit = True` to stop it.

    Raises
    - RuntimeError: if the server did not report startup in time.
    """

    import uvicorn

    config = uvicorn.Config(app, host=host, port=int(port), log_level=log_level.lower())
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="heapview-server", daemon=True)
    thread.start()

    deadline = time.monotonic() + startup_timeout
    while not server.started:
        if not thread.is_alive() or time.monotonic() > deadline:
            raise RuntimeError(f"diagram service did not start on {host}:{port}")
        time.sleep(0.05)
    return server, thread
