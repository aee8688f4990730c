"""Analysis scheduler: one session at a time, with priority interruption."""
import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from council.orchestrator import CouncilOrchestrator
from feeds.market_cache import MarketDataCache
from feeds.token_discovery import TokenDiscovery
from shared.events import EventBus, EventKind
from shared.schemas import SessionReport, Token, utcnow

logger = logging.getLogger(__name__)


class RequestOutcome(str, Enum):
    STARTED = "started"
    INTERRUPTED = "interrupted"
    ALREADY_ANALYZING = "already_analyzing"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"


@dataclass
class SchedulerState:
    """The only mutable state the engine shares across sessions."""
    busy: bool = False
    current_token: Optional[str] = None
    current_symbol: Optional[str] = None
    started_at: Optional[datetime] = None
    completed: int = 0
    interrupted: int = 0
    failed: int = 0

    def as_dict(self) -> dict:
        return {
            "busy": self.busy,
            "current_token": self.current_token,
            "current_symbol": self.current_symbol,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed": self.completed,
            "interrupted": self.interrupted,
            "failed": self.failed,
        }


class AnalysisScheduler:
    """Starts sessions from passive discovery or explicit priority requests.

    The passive path only starts a session when idle. A priority request
    cancels whatever is running and starts the requested token fresh.
    """

    def __init__(
        self,
        orchestrator: CouncilOrchestrator,
        discovery: TokenDiscovery,
        cache: MarketDataCache,
        events: EventBus,
        scan_interval: float = 30.0,
    ):
        self.orchestrator = orchestrator
        self.discovery = discovery
        self.cache = cache
        self.events = events
        self.scan_interval = scan_interval
        self._state = SchedulerState()
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self.last_report: Optional[SessionReport] = None

    @property
    def state(self) -> SchedulerState:
        """A copy; mutate only through the scheduler."""
        return replace(self._state)

    @property
    def busy(self) -> bool:
        return self._state.busy

    async def try_start(self, token: Token) -> RequestOutcome:
        """Passive path: start only if nothing is running."""
        async with self._lock:
            if self._state.busy:
                return RequestOutcome.BUSY
            self._start(token)
            return RequestOutcome.STARTED

    async def request_priority(self, address: str) -> RequestOutcome:
        """Analyze ``address`` now, interrupting any running session."""
        if self._state.busy and self._state.current_token == address:
            return RequestOutcome.ALREADY_ANALYZING
        token = await self.cache.get_token(address)
        if token is None:
            logger.warning("Priority token unavailable", extra={"token": address})
            return RequestOutcome.UNAVAILABLE

        async with self._lock:
            if self._state.busy and self._state.current_token == address:
                return RequestOutcome.ALREADY_ANALYZING
            interrupted = False
            if self._state.busy and self._task is not None:
                logger.info("Interrupting session for priority request", extra={
                    "current": self._state.current_symbol,
                    "requested": token.symbol,
                })
                old = self._task
                old.cancel()
                await asyncio.wait([old])
                interrupted = True
            self.discovery.mark_seen(address)
            self._start(token)
        return RequestOutcome.INTERRUPTED if interrupted else RequestOutcome.STARTED

    def _start(self, token: Token) -> None:
        self._state.busy = True
        self._state.current_token = token.address
        self._state.current_symbol = token.symbol
        self._state.started_at = utcnow()
        self._task = asyncio.create_task(self._run(token), name=f"session-{token.symbol}")

    async def _run(self, token: Token) -> Optional[SessionReport]:
        try:
            report = await self.orchestrator.evaluate(token)
            self._state.completed += 1
            self.last_report = report
            return report
        except asyncio.CancelledError:
            self._state.interrupted += 1
            raise
        except Exception as e:
            self._state.failed += 1
            logger.error(f"Session crashed: {e}", exc_info=True, extra={"token": token.address})
            return None
        finally:
            if self._task is asyncio.current_task():
                self._state.busy = False
                self._state.current_token = None
                self._state.current_symbol = None
                self._state.started_at = None

    async def wait_idle(self) -> Optional[SessionReport]:
        """Wait for the running session, if any. Returns its report when it completed."""
        task = self._task
        if task is None:
            return None
        await asyncio.wait([task])
        if task.cancelled():
            return None
        return task.result()

    async def scan_once(self) -> RequestOutcome:
        if self._state.busy:
            return RequestOutcome.BUSY
        token = await self.discovery.next_candidate()
        if token is None:
            return RequestOutcome.UNAVAILABLE
        self.events.emit(
            EventKind.TOKEN_SPOTTED, token_address=token.address,
            payload={"symbol": token.symbol, "market_cap": token.market_cap, "holders": token.holders},
        )
        outcome = await self.try_start(token)
        if outcome == RequestOutcome.BUSY and self._state.current_token != token.address:
            # a priority request took the slot while the candidate was being fetched
            self.discovery.requeue(token)
            logger.info("Candidate requeued, scheduler busy", extra={"token": token.symbol})
        return outcome

    async def run(self, stop: asyncio.Event):
        """Passive scan loop until ``stop`` is set."""
        logger.info("Scheduler starting", extra={"scan_interval": self.scan_interval})
        while not stop.is_set():
            try:
                await self.scan_once()
            except Exception as e:
                logger.error(f"Scan error: {e}", exc_info=True)
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.scan_interval)
            except asyncio.TimeoutError:
                continue
        await self.shutdown()

    async def shutdown(self):
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])
