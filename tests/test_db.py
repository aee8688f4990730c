"""Tests for storage.db."""
import pytest
import pytest_asyncio

from shared.events import CouncilEvent, EventKind
from shared.schemas import PositionRecord, TradeResult, TradeStatus
from storage.db import Database


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(str(tmp_path / "nested" / "council.db"))
    await database.init()
    yield database
    await database.close()


@pytest.mark.asyncio
async def test_trade_outcome_recorded_once_per_persona(db):
    result = TradeResult(persona_id="chad", token_address="0xabc", status=TradeStatus.CONFIRMED,
                         amount_in=1.5, amount_out=900.0, tx_id="paper-1")
    await db.log_trade_outcome("s1", result)
    await db.log_trade_outcome("s1", result)
    rows = await db.get_trade_outcomes("s1")
    assert len(rows) == 1
    assert rows[0]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_session_summary_upsert(db):
    summary = {"session_id": "s1", "token_address": "0xabc", "symbol": "CAT", "status": "interrupted"}
    await db.log_session(summary)
    await db.log_session({**summary, "status": "completed", "decision": "buy", "bullish": 4})
    sessions = await db.get_recent_sessions()
    assert len(sessions) == 1
    assert sessions[0]["status"] == "completed"
    assert sessions[0]["bullish"] == 4


@pytest.mark.asyncio
async def test_events_persisted_in_order(db):
    for kind in (EventKind.SESSION_STARTED, EventKind.MESSAGE, EventKind.SESSION_COMPLETED):
        await db.log_event(CouncilEvent(kind=kind, session_id="s1", payload={"kind": kind}))
    rows = await db.get_events("s1")
    assert [r["kind"] for r in rows] == ["session_started", "message", "session_completed"]


@pytest.mark.asyncio
async def test_position_summary(db):
    for i, persona in enumerate(["chad", "chad", "oracle"]):
        await db.log_position(PositionRecord(
            persona_id=persona, token_address="0xabc", amount_in=1.0 + i,
            amount_out=10.0, entry_price=0.1, tx_id=f"tx-{i}",
        ))
    await db.close_position("tx-0")
    summary = await db.get_position_summary()
    assert summary["chad"]["total_positions"] == 2
    assert summary["chad"]["open"] == 1
    assert summary["chad"]["total_volume"] == pytest.approx(3.0)
    assert summary["oracle"]["open"] == 1
