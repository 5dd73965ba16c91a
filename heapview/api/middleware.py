from __future__ import annotations

import logging
import time
from typing import Callable, Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("heapview.api")

SESSION_HEADER = "X-Heapview-Session"


def _session_id(request: Request) -> Optional[str]:
    session = getattr(request.app.state, "session", None)
    return getattr(session, "session_id", None)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every HTTP response with a request id and the diagram session.

    Headers:
      - X-Request-ID: echoed when the client sent a short one, else generated
      - X-Heapview-Session: id of the session the service is drawing
    """

    def __init__(self, app, *, header_name: str = "X-Request-ID", max_len: int = 128):
        super().__init__(app)
        self._header_name = header_name
        self._max_len = max_len

    async def dispatch(self, request: Request, call_next: Callable):
        rid = request.headers.get(self._header_name)
        if not rid or len(rid) > self._max_len:
            rid = uuid4().hex
        request.state.request_id = rid

        response: Response = await call_next(request)
        response.headers[self._header_name] = rid
        sid = _session_id(request)
        if sid:
            response.headers[SESSION_HEADER] = sid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One `api_request` record per HTTP request, keyed by diagram session."""

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.monotonic()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            return response
        finally:
            session = getattr(request.app.state, "session", None)
            log.info(
                "api_request",
                extra={
                    "session_id": _session_id(request),
                    "request_id": getattr(request.state, "request_id", None),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": int((time.monotonic() - start) * 1000),
                    "subscribers": getattr(session, "subscriber_count", None),
                },
            )
