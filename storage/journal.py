"""Event journal: consumes council events, logs and persists them."""
import asyncio
import logging

import aiosqlite

from shared.events import CouncilEvent, EventBus, EventKind
from shared.schemas import TradeResult
from storage.db import Database

logger = logging.getLogger(__name__)

SESSION_END_KINDS = {
    EventKind.SESSION_COMPLETED,
    EventKind.SESSION_INTERRUPTED,
    EventKind.SESSION_FAILED,
}


class EventJournal:
    """EventSink consumer. Delivery is best effort and never blocks the council."""

    def __init__(self, bus: EventBus, db: Database, pacing_seconds: float = 0.0):
        self.bus = bus
        self.db = db
        self.pacing_seconds = pacing_seconds
        self.processed = 0

    async def run(self):
        while True:
            event = await self.bus.next()
            try:
                await self.handle(event)
            finally:
                self.bus.task_done()
            if self.pacing_seconds > 0 and event.kind == EventKind.MESSAGE:
                await asyncio.sleep(self.pacing_seconds)

    async def drain(self) -> int:
        """Handle everything currently queued. Returns the number handled."""
        events = self.bus.drain()
        for event in events:
            await self.handle(event)
        return len(events)

    async def handle(self, event: CouncilEvent):
        try:
            self._log(event)
        except (KeyError, TypeError) as e:
            # payload keys that clash with LogRecord attributes
            logger.warning(f"Could not log event: {e}", extra={"event": event.kind, "session_id": event.session_id})
        try:
            await self.db.log_event(event)
            if event.kind == EventKind.TRADE_OUTCOME:
                await self.db.log_trade_outcome(event.session_id, TradeResult(**event.payload))
            elif event.kind in SESSION_END_KINDS:
                await self.db.log_session(event.payload)
        except (aiosqlite.Error, KeyError, ValueError) as e:
            logger.error(f"Failed to persist event: {e}", extra={"kind": event.kind})
        self.processed += 1

    def _log(self, event: CouncilEvent):
        extra = {"event": event.kind, "session_id": event.session_id}
        if event.persona_id:
            extra["persona"] = event.persona_id
        if event.kind == EventKind.MESSAGE:
            logger.info(event.payload.get("text", ""), extra={**extra, "kind": event.payload.get("kind")})
        elif event.kind in (EventKind.VERDICT_REACHED, EventKind.TRADE_OUTCOME) or event.kind in SESSION_END_KINDS:
            logger.info(f"Council event: {event.kind.value}", extra={**extra, **event.payload})
        else:
            logger.debug(f"Council event: {event.kind.value}", extra={**extra, **event.payload})
