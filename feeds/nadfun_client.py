"""nad.fun market data provider over HTTP."""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from shared.schemas import Candle, MarketSnapshot, SwapSide, SwapTrade

logger = logging.getLogger(__name__)

NADFUN_BASE = "https://api.nadapp.net"
WEI = 1e18

RESOLUTION_SECONDS = {"1": 60, "5": 300, "15": 900, "60": 3600, "1D": 86400}


class MarketDataError(Exception):
    """Upstream market data could not be fetched or parsed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def parse_market(address: str, token_info: dict, market_info: dict, percent: Any = 0) -> MarketSnapshot:
    """Build a MarketSnapshot from nad.fun token_info/market_info blocks.

    Market cap is price x supply, liquidity is twice the native reserve
    valued at the native token's USD price.
    """
    price = _float(market_info.get("price_usd") or market_info.get("token_price"))
    supply = _float(market_info.get("total_supply")) / WEI
    reserve_native = _float(market_info.get("reserve_native")) / WEI
    native_price = _float(market_info.get("native_price"))
    created = token_info.get("created_at")
    return MarketSnapshot(
        address=address,
        symbol=token_info.get("symbol") or "UNKNOWN",
        name=token_info.get("name") or "Unknown",
        price=price,
        market_cap=price * supply,
        liquidity=reserve_native * native_price * 2,
        holders=_int(market_info.get("holder_count")),
        volume_24h=_float(market_info.get("volume")),
        price_change_24h=_float(percent),
        created_at=datetime.fromtimestamp(_int(created), tz=timezone.utc) if created else None,
    )


class NadFunClient:
    """Thin async client for the nad.fun agent API.

    Every failure (HTTP 429, non-2xx, transport error, malformed payload) is
    raised as MarketDataError. Rate limiting is the caller's concern.
    """

    def __init__(
        self,
        base_url: str = NADFUN_BASE,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise MarketDataError(f"request to {path} failed: {e}") from e
        if resp.status_code == 429:
            raise MarketDataError(f"rate limited on {path}", status_code=429)
        if resp.status_code >= 400:
            raise MarketDataError(
                f"{path} returned HTTP {resp.status_code}", status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise MarketDataError(f"{path} returned invalid JSON") from e

    async def fetch_market(self, address: str) -> MarketSnapshot:
        data = await self._get_json(f"/agent/token/{address}")
        if not isinstance(data, dict) or "market_info" not in data:
            raise MarketDataError(f"no market_info for {address}")
        return parse_market(
            address,
            data.get("token_info") or {},
            data.get("market_info") or {},
            data.get("percent", 0),
        )

    async def fetch_swap_history(self, address: str, limit: int = 100) -> list[SwapTrade]:
        data = await self._get_json(f"/agent/swap-history/{address}", params={"limit": limit})
        if not isinstance(data, dict):
            raise MarketDataError(f"malformed swap history for {address}")
        swaps = []
        for item in data.get("swaps", []):
            info = item.get("swap_info") or {}
            swaps.append(SwapTrade(
                side=SwapSide.BUY if info.get("event_type") == "BUY" else SwapSide.SELL,
                native_amount=_float(info.get("native_amount")),
                timestamp=_int(info.get("created_at")),
            ))
        return swaps

    async def fetch_candles(
        self, address: str, resolution: str = "5", countback: int = 100,
    ) -> list[Candle]:
        now = int(time.time())
        span = RESOLUTION_SECONDS.get(resolution, 300) * countback
        data = await self._get_json(f"/agent/chart/{address}", params={
            "resolution": resolution,
            "from": now - span,
            "to": now,
            "countback": countback,
        })
        if not isinstance(data, dict):
            raise MarketDataError(f"malformed chart for {address}")
        # "no_data" is a valid empty chart for brand new tokens
        if data.get("s") != "ok" or not data.get("t"):
            return []
        volumes = data.get("v") or []
        try:
            return [
                Candle(
                    timestamp=int(ts),
                    open=float(data["o"][i]),
                    high=float(data["h"][i]),
                    low=float(data["l"][i]),
                    close=float(data["c"][i]),
                    volume=_float(volumes[i] if i < len(volumes) else 0),
                )
                for i, ts in enumerate(data["t"])
            ]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise MarketDataError(f"malformed chart arrays for {address}") from e

    async def fetch_token_list(self, limit: int = 30) -> list[MarketSnapshot]:
        """Candidate tokens ordered by market cap, largest first."""
        data = await self._get_json("/order/market_cap", params={
            "page": 1,
            "limit": limit,
            "direction": "DESC",
            "is_nsfw": "false",
        })
        if not isinstance(data, dict):
            raise MarketDataError("malformed token list")
        snapshots = []
        for item in data.get("tokens", []):
            token_info = item.get("token_info") or {}
            address = token_info.get("token_id")
            if not address:
                continue
            snapshots.append(parse_market(
                address, token_info, item.get("market_info") or {}, item.get("percent", 0),
            ))
        return snapshots

    async def fetch_holdings(self, wallet: str) -> dict[str, float]:
        """Token balances held by a wallet, keyed by token address."""
        data = await self._get_json(f"/profile/hold-token/{wallet}", params={
            "tableType": "hold-tokens-table",
            "page": 1,
            "limit": 50,
        })
        if not isinstance(data, dict):
            raise MarketDataError(f"malformed holdings for {wallet}")
        holdings = {}
        for item in data.get("tokens", []):
            address = (item.get("token_info") or {}).get("token_id")
            amount = _float((item.get("balance_info") or {}).get("balance")) / WEI
            if address and amount > 0:
                holdings[address] = amount
        return holdings

    async def close(self) -> None:
        await self._client.aclose()
