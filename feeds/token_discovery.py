"""Passive discovery of candidate tokens for the council."""
import logging
from collections import deque
from typing import Optional

from feeds.market_cache import MarketDataCache
from shared.config import Config
from shared.schemas import MarketSnapshot, Token

logger = logging.getLogger(__name__)


class TokenDiscovery:
    """Queue of unseen tokens that pass the basic market filters."""

    def __init__(self, cache: MarketDataCache, config: Config, batch_size: int = 30):
        self.cache = cache
        self.config = config
        self.batch_size = batch_size
        self._queue: deque[MarketSnapshot] = deque()
        self._requeued: deque[Token] = deque()
        self._seen: set[str] = set()

    def passes_filters(self, snap: MarketSnapshot) -> bool:
        cfg = self.config
        if snap.market_cap < cfg.MIN_MARKET_CAP or snap.market_cap > cfg.MAX_MARKET_CAP:
            return False
        if snap.liquidity < cfg.MIN_LIQUIDITY:
            return False
        return snap.holders >= cfg.MIN_HOLDERS

    def mark_seen(self, address: str) -> None:
        self._seen.add(address.lower())

    async def refill(self) -> int:
        """Fetch the token list and queue every new candidate. Returns count added."""
        snapshots = await self.cache.list_tokens(self.batch_size)
        if not snapshots:
            return 0
        added = 0
        for snap in snapshots:
            key = snap.address.lower()
            if key in self._seen:
                continue
            self._seen.add(key)
            if not self.passes_filters(snap):
                continue
            self._queue.append(snap)
            added += 1
        logger.info("Token queue refilled", extra={"added": added, "remaining": len(self._queue)})
        return added

    def requeue(self, token: Token) -> None:
        """Put back a candidate that was taken but could not be started."""
        self._requeued.appendleft(token)

    async def next_candidate(self) -> Optional[Token]:
        """Next queued token with fresh market facts, or None when nothing is available."""
        if self._requeued:
            return self._requeued.popleft()
        if not self._queue:
            await self.refill()
        if not self._queue:
            return None
        stub = self._queue.popleft()
        token = Token.from_snapshot(stub)
        fresh = await self.cache.get(stub.address)
        if fresh is None:
            return token
        return token.with_market(fresh)

    def queue_status(self) -> dict:
        return {"remaining": len(self._queue) + len(self._requeued), "seen": len(self._seen)}

    def clear(self) -> None:
        self._queue.clear()
        self._requeued.clear()
        self._seen.clear()
