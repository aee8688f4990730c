"""Typed event channel between the council engine and its observers."""
import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from shared.schemas import utcnow

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    TOKEN_SPOTTED = "token_spotted"
    SESSION_STARTED = "session_started"
    PHASE_CHANGED = "phase_changed"
    RISK_ASSESSED = "risk_assessed"
    OPINION_STATED = "opinion_stated"
    MESSAGE = "message"
    OPINION_CHANGED = "opinion_changed"
    VOTE_CAST = "vote_cast"
    VERDICT_REACHED = "verdict_reached"
    TRADE_OUTCOME = "trade_outcome"
    POSITION_OPENED = "position_opened"
    SESSION_COMPLETED = "session_completed"
    SESSION_INTERRUPTED = "session_interrupted"
    SESSION_FAILED = "session_failed"


class CouncilEvent(BaseModel):
    kind: EventKind
    session_id: Optional[str] = None
    token_address: Optional[str] = None
    persona_id: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)


class EventBus:
    """Bounded fire-and-forget queue of CouncilEvents.

    ``emit`` never awaits. When the queue is full the oldest pending event is
    discarded so producers are never slowed down by a lagging consumer.
    """

    def __init__(self, maxsize: int = 1000):
        self._queue: asyncio.Queue[CouncilEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0

    def emit(self, kind: EventKind, **fields: Any) -> CouncilEvent:
        event = CouncilEvent(kind=kind, **fields)
        if self._queue.full():
            try:
                self._queue.get_nowait()
                self._queue.task_done()
            except asyncio.QueueEmpty:
                pass
            self.dropped += 1
            logger.warning("Event queue full, dropped oldest event", extra={
                "dropped_total": self.dropped,
            })
        self._queue.put_nowait(event)
        return event

    async def next(self) -> CouncilEvent:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    def drain(self) -> list[CouncilEvent]:
        """Return and remove every queued event without waiting."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
                self._queue.task_done()
            except asyncio.QueueEmpty:
                return events

    def qsize(self) -> int:
        return self._queue.qsize()
