from __future__ import annotations

import json
import ssl
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urljoin
from urllib.request import Request, urlopen


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """HTTP response wrapper. `body_bytes` is untrusted."""

    status: int
    headers: Mapping[str, str]
    body_bytes: bytes

    def json(self) -> Any:
        """Decode body as JSON."""

        return json.loads(self.body_bytes.decode("utf-8", errors="strict"))


class HeapviewHttpClient:
    """Minimal stdlib-only client for the diagram service."""

    def __init__(self, base_url: str, *, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = float(timeout)

    def get(self, path: str) -> HttpResponse:
        """HTTP GET."""

        url = urljoin(self.base_url, path.lstrip("/"))
        req = Request(url=url, method="GET")
        return _do_request(req, self.timeout)

    def put_json(self, path: str, payload: Mapping[str, Any]) -> HttpResponse:
        """HTTP PUT with a JSON body."""

        url = urljoin(self.base_url, path.lstrip("/"))
        body = json.dumps(dict(payload)).encode("utf-8")
        req = Request(url=url, data=body, method="PUT")
        req.add_header("Content-Type", "application/json")
        req.add_header("Content-Length", str(len(body)))
        return _do_request(req, self.timeout)

    def health(self) -> Dict[str, Any]:
        return _json_or_raise(self.get("/health"))

    def diagram(self) -> Dict[str, Any]:
        return _json_or_raise(self.get("/diagram"))

    def events(self, limit: int = 50) -> List[Dict[str, Any]]:
        return _json_or_raise(self.get(f"/events?limit={int(limit)}"))

    def settings(self, *, pinned: Optional[bool] = None, mode: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if pinned is not None:
            payload["pinned"] = pinned
        if mode is not None:
            payload["mode"] = mode
        return _json_or_raise(self.put_json("/settings", payload))


def _json_or_raise(resp: HttpResponse) -> Any:
    if resp.status >= 400:
        detail = resp.body_bytes.decode("utf-8", errors="replace")
        raise RuntimeError(f"diagram service returned {resp.status}: {detail}")
    return resp.json()


def _do_request(req: Request, timeout: float) -> HttpResponse:
    """Execute a request with the default SSL context (verification on)."""

    try:
        ctx = ssl.create_default_context()
        with urlopen(req, context=ctx, timeout=timeout) as resp:
            body = resp.read()
            headers = {k: v for k, v in resp.headers.items()}
            return HttpResponse(status=int(resp.status), headers=headers, body_bytes=body)
    except HTTPError as e:
        body = e.read() if hasattr(e, "read") else b""
        headers = dict(getattr(e, "headers", {}) or {})
        return HttpResponse(
            status=int(getattr(e, "code", 0) or 0), headers=headers, body_bytes=body
        )
    except URLError as e:
        raise RuntimeError(f"network error: {e}") from e
