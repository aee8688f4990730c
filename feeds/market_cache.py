"""TTL-cached, rate-limited access to market data."""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional

from feeds.nadfun_client import MarketDataError, NadFunClient
from shared.config import Config
from shared.schemas import Candle, MarketSnapshot, SwapTrade, Token

logger = logging.getLogger(__name__)

# Returned in place of data when the provider fails. Never cached.
UNAVAILABLE = None


class RateLimiter:
    """Single lane with a minimum spacing between upstream calls."""

    def __init__(self, min_interval: float, clock: Callable[[], float] = time.monotonic):
        self.min_interval = min_interval
        self._clock = clock
        self._lock = asyncio.Lock()
        self._last_call: Optional[float] = None

    async def __aenter__(self):
        await self._lock.acquire()
        try:
            if self._last_call is not None:
                wait = self.min_interval - (self._clock() - self._last_call)
                if wait > 0:
                    await asyncio.sleep(wait)
        except BaseException:
            self._lock.release()
            raise
        return self

    async def __aexit__(self, *exc):
        self._last_call = self._clock()
        self._lock.release()
        return False


class _Partition:
    def __init__(self, ttl: float):
        self.ttl = ttl
        self.entries: dict[str, tuple[Any, float]] = {}

    def lookup(self, key: str, now: float) -> Any:
        entry = self.entries.get(key)
        if entry is None:
            return None
        value, fetched_at = entry
        if now - fetched_at >= self.ttl:
            del self.entries[key]
            return None
        return value

    def store(self, key: str, value: Any, now: float) -> None:
        self.entries[key] = (value, now)


class MarketDataCache:
    """Front for the market data provider.

    One TTL partition per kind of data, one rate limiter shared by all of
    them, and at most one upstream fetch in flight per (partition, key).
    Failed fetches return UNAVAILABLE and leave the cache untouched.
    """

    def __init__(
        self,
        provider: NadFunClient,
        config: Config,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.config = config
        self._clock = clock
        self.limiter = RateLimiter(config.RATE_LIMIT_INTERVAL, clock=clock)
        self._partitions = {
            "token": _Partition(config.TOKEN_TTL_SECONDS),
            "market": _Partition(config.MARKET_TTL_SECONDS),
            "swaps": _Partition(config.MARKET_TTL_SECONDS),
            "candles": _Partition(config.CANDLES_TTL_SECONDS),
            "holdings": _Partition(config.HOLDINGS_TTL_SECONDS),
        }
        self._inflight: dict[tuple[str, str], asyncio.Task] = {}
        self.upstream_calls = 0
        self.failures = 0

    async def _get(self, partition: str, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        part = self._partitions[partition]
        cached = part.lookup(key, self._clock())
        if cached is not None:
            return cached

        flight_key = (partition, key)
        task = self._inflight.get(flight_key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(part, partition, key, fetch))
            self._inflight[flight_key] = task
            task.add_done_callback(lambda _t: self._inflight.pop(flight_key, None))
        # a cancelled caller must not cancel the fetch other callers wait on
        return await asyncio.shield(task)

    async def _fetch(self, part: _Partition, partition: str, key: str, fetch) -> Any:
        async with self.limiter:
            self.upstream_calls += 1
            try:
                value = await fetch()
            except MarketDataError as e:
                self.failures += 1
                logger.warning(f"Market data unavailable: {e}", extra={
                    "partition": partition,
                    "key": key,
                    "status_code": e.status_code,
                })
                return UNAVAILABLE
        part.store(key, value, self._clock())
        return value

    async def get(self, address: str) -> Optional[MarketSnapshot]:
        """Current market snapshot for a token, or UNAVAILABLE."""
        return await self._get("market", address, lambda: self.provider.fetch_market(address))

    async def get_token(self, address: str) -> Optional[Token]:
        """Token metadata snapshot (longer TTL), or UNAVAILABLE."""
        async def fetch() -> Token:
            return Token.from_snapshot(await self.provider.fetch_market(address))
        return await self._get("token", address, fetch)

    async def get_swap_history(self, address: str, limit: Optional[int] = None) -> Optional[list[SwapTrade]]:
        limit = limit or self.config.SWAP_HISTORY_LIMIT
        return await self._get(
            "swaps", f"{address}:{limit}",
            lambda: self.provider.fetch_swap_history(address, limit),
        )

    async def get_candles(
        self, address: str, resolution: str = "5", countback: int = 100,
    ) -> Optional[list[Candle]]:
        return await self._get(
            "candles", f"{address}:{resolution}:{countback}",
            lambda: self.provider.fetch_candles(address, resolution, countback),
        )

    async def get_holdings(self, wallet: str) -> Optional[dict[str, float]]:
        return await self._get("holdings", wallet, lambda: self.provider.fetch_holdings(wallet))

    async def get_wallet_holdings(self, wallets: Mapping[str, str]) -> dict[str, Optional[dict[str, float]]]:
        """Holdings per label (persona id), UNAVAILABLE where the wallet could not be read."""
        labels = list(wallets)
        results = await asyncio.gather(*(self.get_holdings(wallets[label]) for label in labels))
        return dict(zip(labels, results))

    async def list_tokens(self, limit: int = 30) -> Optional[list[MarketSnapshot]]:
        """Fetch the candidate list through the shared lane and seed the token partition."""
        async with self.limiter:
            self.upstream_calls += 1
            try:
                snapshots = await self.provider.fetch_token_list(limit)
            except MarketDataError as e:
                self.failures += 1
                logger.warning(f"Token list unavailable: {e}")
                return UNAVAILABLE
        now = self._clock()
        for snap in snapshots:
            self._partitions["token"].store(snap.address, Token.from_snapshot(snap), now)
        return snapshots

    def stats(self) -> dict:
        stats = {name: len(part.entries) for name, part in self._partitions.items()}
        stats["in_flight"] = len(self._inflight)
        stats["upstream_calls"] = self.upstream_calls
        stats["failures"] = self.failures
        return stats

    def clear(self) -> None:
        for part in self._partitions.values():
            part.entries.clear()
        logger.info("Market data cache cleared")
