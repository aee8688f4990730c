"""SQLite database via aiosqlite."""
import aiosqlite
import json
import logging
import os
from datetime import datetime
from typing import Optional

from shared.events import CouncilEvent
from shared.schemas import PositionRecord, TradeResult, utcnow
from storage.models import ALL_TABLES

logger = logging.getLogger(__name__)


class Database:
    """Async SQLite database for positions, sessions and council events."""

    def __init__(self, db_path: str = "data/council.db"):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def init(self):
        """Initialize database and create tables."""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        for ddl in ALL_TABLES:
            await self._db.execute(ddl)
        await self._db.commit()
        logger.info("Database initialized", extra={"path": self.db_path})

    async def close(self):
        if self._db:
            await self._db.close()
            self._db = None

    async def _fetch_dicts(self, query: str, params: tuple = ()) -> list[dict]:
        cursor = await self._db.execute(query, params)
        rows = await cursor.fetchall()
        columns = [d[0] for d in cursor.description]
        return [dict(zip(columns, row)) for row in rows]

    async def log_position(self, record: PositionRecord) -> int:
        """Insert an opened position and return its ID."""
        cursor = await self._db.execute(
            """INSERT INTO positions
               (persona_id, token_address, symbol, amount_in, amount_out,
                entry_price, tx_id, is_paper, session_id, opened_at, closed_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.persona_id, record.token_address, record.symbol,
                record.amount_in, record.amount_out, record.entry_price,
                record.tx_id, 1 if record.is_paper else 0, record.session_id,
                record.opened_at.isoformat(),
                record.closed_at.isoformat() if record.closed_at else None,
            ),
        )
        await self._db.commit()
        return cursor.lastrowid

    async def close_position(self, tx_id: str):
        await self._db.execute(
            "UPDATE positions SET closed_at=? WHERE tx_id=? AND closed_at IS NULL",
            (utcnow().isoformat(), tx_id),
        )
        await self._db.commit()

    async def get_open_positions(self, persona_id: Optional[str] = None) -> list[dict]:
        """Get open (unclosed) positions, optionally for one persona."""
        if persona_id is None:
            return await self._fetch_dicts(
                "SELECT * FROM positions WHERE closed_at IS NULL ORDER BY opened_at DESC"
            )
        return await self._fetch_dicts(
            """SELECT * FROM positions WHERE closed_at IS NULL AND persona_id=?
               ORDER BY opened_at DESC""",
            (persona_id,),
        )

    async def get_positions_since(self, persona_id: str, since: datetime) -> list[dict]:
        """Positions a persona opened at or after ``since``."""
        return await self._fetch_dicts(
            """SELECT * FROM positions WHERE persona_id=? AND opened_at >= ?
               ORDER BY opened_at DESC""",
            (persona_id, since.isoformat()),
        )

    async def get_position_summary(self) -> dict:
        """Aggregate position counts and volume per persona."""
        rows = await self._fetch_dicts(
            """SELECT persona_id,
                 COUNT(*) as total_positions,
                 SUM(CASE WHEN closed_at IS NULL THEN 1 ELSE 0 END) as open,
                 COALESCE(SUM(amount_in), 0) as total_volume
               FROM positions GROUP BY persona_id"""
        )
        return {row.pop("persona_id"): row for row in rows}

    async def log_session(self, summary: dict):
        await self._db.execute(
            """INSERT OR REPLACE INTO sessions
               (id, token_address, symbol, status, decision, bullish, bearish,
                neutral, risk_score, confidence, rounds, finished_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                summary["session_id"], summary["token_address"],
                summary.get("symbol", ""), summary["status"],
                summary.get("decision"), summary.get("bullish", 0),
                summary.get("bearish", 0), summary.get("neutral", 0),
                summary.get("risk_score"), summary.get("confidence", 0.0),
                summary.get("rounds", 0),
                summary.get("finished_at", utcnow().isoformat()),
            ),
        )
        await self._db.commit()

    async def get_recent_sessions(self, limit: int = 20) -> list[dict]:
        return await self._fetch_dicts(
            "SELECT * FROM sessions ORDER BY finished_at DESC LIMIT ?", (limit,)
        )

    async def log_trade_outcome(self, session_id: str, result: TradeResult):
        """Record a persona's trade outcome. One row per (session, persona)."""
        await self._db.execute(
            """INSERT OR IGNORE INTO trade_outcomes
               (session_id, persona_id, token_address, status, amount_in,
                amount_out, tx_id, reason, recorded_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                session_id, result.persona_id, result.token_address,
                result.status.value, result.amount_in, result.amount_out,
                result.tx_id, result.reason, utcnow().isoformat(),
            ),
        )
        await self._db.commit()

    async def get_trade_outcomes(self, session_id: str) -> list[dict]:
        return await self._fetch_dicts(
            "SELECT * FROM trade_outcomes WHERE session_id=? ORDER BY id", (session_id,)
        )

    async def log_event(self, event: CouncilEvent):
        await self._db.execute(
            """INSERT INTO events
               (kind, session_id, token_address, persona_id, payload, timestamp)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                event.kind.value, event.session_id, event.token_address,
                event.persona_id, json.dumps(event.payload, default=str),
                event.timestamp.isoformat(),
            ),
        )
        await self._db.commit()

    async def get_events(self, session_id: str) -> list[dict]:
        return await self._fetch_dicts(
            "SELECT * FROM events WHERE session_id=? ORDER BY id", (session_id,)
        )
