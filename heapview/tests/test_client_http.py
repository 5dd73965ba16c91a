import json

import pytest

import heapview.client.http as http_mod
from heapview.client.http import HeapviewHttpClient, HttpResponse


def _fake(status, payload, calls):
    def do_request(req, timeout):
        calls.append(req)
        return HttpResponse(status=status, headers={}, body_bytes=json.dumps(payload).encode("utf-8"))

    return do_request


def test_diagram_fetches_current_elements(monkeypatch):
    calls = []
    monkeypatch.setattr(http_mod, "_do_request", _fake(200, {"session_id": "s1", "elements": []}, calls))

    data = HeapviewHttpClient("http://127.0.0.1:3000").diagram()

    assert data["session_id"] == "s1"
    assert calls[0].full_url == "http://127.0.0.1:3000/diagram"
    assert calls[0].get_method() == "GET"


def test_settings_sends_only_given_toggles(monkeypatch):
    calls = []
    monkeypatch.setattr(http_mod, "_do_request", _fake(200, {"mode": "dark"}, calls))

    HeapviewHttpClient("http://127.0.0.1:3000/").settings(mode="dark")

    req = calls[0]
    assert req.get_method() == "PUT"
    assert json.loads(req.data) == {"mode": "dark"}


def test_error_status_raises(monkeypatch):
    monkeypatch.setattr(http_mod, "_do_request", _fake(400, {"detail": "invalid_mode"}, []))

    with pytest.raises(RuntimeError, match="400"):
        HeapviewHttpClient("http://127.0.0.1:3000").settings(mode="sepia")


def test_events_passes_limit(monkeypatch):
    calls = []
    monkeypatch.setattr(http_mod, "_do_request", _fake(200, [], calls))

    assert HeapviewHttpClient("http://127.0.0.1:3000").events(limit=7) == []
    assert calls[0].full_url.endswith("/events?limit=7")
