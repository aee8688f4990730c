"""Per-persona paper balances and trading-policy limits."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from shared.config import Config
from shared.schemas import PolicyDecision, utcnow
from storage.db import Database

logger = logging.getLogger(__name__)


class PositionTracker:
    """Balance provider and policy gate backed by the positions table."""

    def __init__(self, db: Database, config: Config, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.max_open_positions = config.MAX_OPEN_POSITIONS
        self.cooldown = timedelta(seconds=config.COOLDOWN_SECONDS)
        self.max_daily_exposure = config.MAX_DAILY_EXPOSURE
        self.starting_balance = config.PAPER_STARTING_BALANCE
        self._clock = clock

    async def can_trade(self, persona_id: str) -> PolicyDecision:
        """Check if a persona may open another position."""
        open_positions = await self.db.get_open_positions(persona_id)
        if len(open_positions) >= self.max_open_positions:
            return PolicyDecision(
                allowed=False,
                reason=f"Max open positions reached ({self.max_open_positions})",
            )

        now = self._clock()
        day_start = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        since = min(day_start, now - self.cooldown)
        recent = await self.db.get_positions_since(persona_id, since)

        last_open = max((datetime.fromisoformat(p["opened_at"]) for p in recent), default=None)
        if last_open is not None and now - last_open < self.cooldown:
            remaining = (self.cooldown - (now - last_open)).total_seconds()
            return PolicyDecision(allowed=False, reason=f"Cooldown active ({remaining:.0f}s left)")

        today = sum(
            p["amount_in"] for p in recent
            if datetime.fromisoformat(p["opened_at"]) >= day_start
        )
        if today >= self.max_daily_exposure:
            return PolicyDecision(
                allowed=False,
                reason=f"Daily exposure {today:.2f} MON at cap {self.max_daily_exposure:.2f}",
            )

        return PolicyDecision(allowed=True)

    async def get_balance(self, persona_id: str) -> float:
        """Paper balance: starting balance minus MON locked in open positions."""
        open_positions = await self.db.get_open_positions(persona_id)
        locked = sum(p["amount_in"] for p in open_positions)
        return max(0.0, self.starting_balance - locked)

    async def get_open_count(self) -> int:
        return len(await self.db.get_open_positions())
