"""Paper trading: simulate buys and log positions to the database."""
import logging
import uuid

from feeds.market_cache import MarketDataCache
from shared.config import Config
from shared.schemas import ExecutionReceipt, PositionRecord
from storage.db import Database

logger = logging.getLogger(__name__)


class TradeExecutionError(Exception):
    """A buy could not be executed."""


class PaperTrader:
    """Simulates buys at the cached market price without real funds."""

    def __init__(self, db: Database, cache: MarketDataCache, config: Config):
        self.db = db
        self.cache = cache
        self.native_usd_price = config.NATIVE_USD_PRICE

    async def buy(
        self, persona_id: str, token_address: str, amount_in: float, session_id: str = "",
    ) -> ExecutionReceipt:
        """Spend ``amount_in`` MON on a token. Never retried by callers."""
        if amount_in <= 0:
            raise TradeExecutionError(f"invalid amount {amount_in}")
        snapshot = await self.cache.get(token_address)
        if snapshot is None or snapshot.price <= 0:
            raise TradeExecutionError(f"no price available for {token_address}")

        amount_out = amount_in * self.native_usd_price / snapshot.price
        tx_id = f"paper-{uuid.uuid4().hex[:16]}"
        record = PositionRecord(
            persona_id=persona_id,
            token_address=token_address,
            symbol=snapshot.symbol,
            amount_in=amount_in,
            amount_out=amount_out,
            entry_price=snapshot.price,
            tx_id=tx_id,
            is_paper=True,
            session_id=session_id,
        )
        position_id = await self.db.log_position(record)

        logger.info(
            "Paper buy executed",
            extra={
                "tx_id": tx_id,
                "position_id": position_id,
                "persona": persona_id,
                "symbol": snapshot.symbol,
                "amount_in": amount_in,
                "amount_out": amount_out,
                "price": snapshot.price,
            },
        )
        return ExecutionReceipt(amount_out=amount_out, tx_id=tx_id)
