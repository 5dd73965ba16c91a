from datetime import timedelta

import pytest

from heapview.core.diagram.context import DiagramContext
from heapview.core.diagram.events import PinnedChangedEvent, PresentationChangedEvent


def test_context_keeps_only_newest_events():
    ctx = DiagramContext(session_id="s1", max_events=3)
    for i in range(5):
        ctx.emit_event(PinnedChangedEvent(pinned=bool(i % 2)))

    events = ctx.get_events()
    assert len(events) == 3
    assert [e.pinned for e in events] == [False, True, False]


def test_limit_returns_newest_oldest_first():
    ctx = DiagramContext(session_id="s1")
    first = PresentationChangedEvent(mode="dark")
    second = PresentationChangedEvent(mode="light")
    ctx.emit_event(first).emit_event(second)

    assert ctx.get_events(1) == (second,)
    assert ctx.get_events(10) == (first, second)


def test_only_diagram_events_are_accepted():
    ctx = DiagramContext(session_id="s1")
    with pytest.raises(TypeError):
        ctx.emit_event("not an event")


def test_timestamp_regression_is_rejected():
    ctx = DiagramContext(session_id="s1")
    later = PinnedChangedEvent(pinned=True)
    earlier = PinnedChangedEvent(pinned=False)
    object.__setattr__(earlier, "created_at", later.created_at - timedelta(seconds=1))

    ctx.emit_event(later)
    with pytest.raises(RuntimeError):
        ctx.emit_event(earlier)


def test_event_payload_is_json_safe():
    ev = PresentationChangedEvent(mode="dark")
    payload = ev.to_payload()

    assert payload["event_type"] == "PresentationChangedEvent"
    assert payload["mode"] == "dark"
    assert isinstance(payload["event_id"], str)
    assert isinstance(payload["created_at"], str)
