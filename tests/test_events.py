"""Tests for shared.events."""
import pytest

from shared.events import EventBus, EventKind


@pytest.mark.asyncio
async def test_emit_then_next_preserves_order():
    bus = EventBus()
    bus.emit(EventKind.SESSION_STARTED, session_id="s1")
    bus.emit(EventKind.VERDICT_REACHED, session_id="s1")
    assert (await bus.next()).kind == EventKind.SESSION_STARTED
    assert (await bus.next()).kind == EventKind.VERDICT_REACHED


@pytest.mark.asyncio
async def test_full_queue_drops_oldest_without_blocking():
    bus = EventBus(maxsize=2)
    bus.emit(EventKind.MESSAGE, payload={"n": 1})
    bus.emit(EventKind.MESSAGE, payload={"n": 2})
    bus.emit(EventKind.MESSAGE, payload={"n": 3})
    assert bus.dropped == 1
    assert [e.payload["n"] for e in bus.drain()] == [2, 3]
    assert bus.qsize() == 0
