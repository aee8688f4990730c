"""Tests for council.orchestrator."""
import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from council.narrator import Narrator
from helpers import FakeCache, ScriptedNarrator, build_orchestrator, make_candles, make_swaps, make_token
from shared.events import EventBus, EventKind
from shared.llm_client import LLMClient
from shared.schemas import SessionStatus, TradeStatus, VerdictDecision, utcnow


@pytest.mark.asyncio
async def test_established_token_is_bought_by_everyone(config):
    bus = EventBus()
    token = make_token(holders=25_000, market_cap=100_000, liquidity=20_000)
    orchestrator = build_orchestrator(FakeCache(token), config, events=bus)

    report = await orchestrator.evaluate(token)

    assert report.status == SessionStatus.COMPLETED
    assert report.verdict.decision == VerdictDecision.BUY
    assert report.verdict.bullish == 5
    assert report.risk.score == 35
    assert report.rounds == 0
    assert len(report.trades) == 5
    assert all(t.status == TradeStatus.CONFIRMED for t in report.trades)
    kinds = [e.kind for e in bus.drain()]
    assert kinds[0] == EventKind.SESSION_STARTED
    assert kinds[-1] == EventKind.SESSION_COMPLETED
    assert orchestrator.current is None


@pytest.mark.asyncio
async def test_fresh_thin_token_is_passed(config):
    bus = EventBus()
    token = make_token(holders=8, liquidity=3_000, created_at=utcnow() - timedelta(minutes=30))
    orchestrator = build_orchestrator(FakeCache(token), config, events=bus)

    report = await orchestrator.evaluate(token)

    assert report.risk.score == 100
    assert report.verdict.decision == VerdictDecision.PASS
    assert report.trades == []
    completed = [e for e in bus.drain() if e.kind == EventKind.SESSION_COMPLETED][0]
    assert completed.payload["decision"] == "pass"
    assert completed.payload["trades"] == 0


@pytest.mark.asyncio
async def test_missing_market_data_scores_technicals_neutral(config):
    token = make_token()
    cache = FakeCache(token, candles=None, swaps=None)
    report = await build_orchestrator(cache, config).evaluate(token)
    assert report.indicators is None
    assert report.scores.technical == 50
    assert report.scores.technical_available is False
    assert report.status == SessionStatus.COMPLETED


@pytest.mark.asyncio
async def test_candles_feed_indicators(config):
    token = make_token()
    closes = [1.0 * (1.01 ** i) for i in range(40)]
    cache = FakeCache(token, candles=make_candles(closes), swaps=make_swaps(6, 2))
    report = await build_orchestrator(cache, config).evaluate(token)
    assert report.indicators is not None
    assert report.indicators.buy_count == 6
    assert report.scores.technical_available is True


@pytest.mark.asyncio
async def test_contested_token_is_debated(config):
    token = make_token(holders=25_000, liquidity=3_000)
    report = await build_orchestrator(FakeCache(token), config).evaluate(token)
    assert report.rounds >= 1
    assert report.verdict.bullish + report.verdict.bearish + report.verdict.neutral == 5


@pytest.mark.asyncio
async def test_narrator_outage_does_not_stop_session(config):
    token = make_token()
    orchestrator = build_orchestrator(FakeCache(token), config, narrator=ScriptedNarrator(fail=True))
    report = await orchestrator.evaluate(token)
    assert report.status == SessionStatus.COMPLETED
    assert all(entry.fallback for entry in report.transcript)


@pytest.mark.asyncio
async def test_crash_emits_failed_and_propagates(config):
    bus = EventBus()
    token = make_token()
    orchestrator = build_orchestrator(FakeCache(token), config, events=bus)
    orchestrator.debate.run = AsyncMock(side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        await orchestrator.evaluate(token)
    failed = [e for e in bus.drain() if e.kind == EventKind.SESSION_FAILED]
    assert failed[0].payload["error"] == "boom"


@pytest.mark.asyncio
async def test_cancel_emits_interrupted(config):
    bus = EventBus()
    token = make_token(holders=25_000, liquidity=3_000)
    narrator = ScriptedNarrator(stall_round=1)
    orchestrator = build_orchestrator(FakeCache(token), config, narrator=narrator, events=bus)

    task = asyncio.ensure_future(orchestrator.evaluate(token))
    await asyncio.wait_for(narrator.stalled.wait(), timeout=1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    interrupted = [e for e in bus.drain() if e.kind == EventKind.SESSION_INTERRUPTED]
    assert len(interrupted) == 1
    assert interrupted[0].payload["phase"] == "exchange"
    assert interrupted[0].payload["trades"] == 0


@pytest.mark.parametrize("body", [{"message": None}, ["not", "a", "chat"]])
@pytest.mark.asyncio
async def test_malformed_llm_reply_falls_back_and_still_trades(config, body):
    client = LLMClient("http://ollama.test", "test-model")
    client._client = httpx.AsyncClient(
        base_url="http://ollama.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)),
    )
    token = make_token(holders=25_000, market_cap=100_000, liquidity=20_000)
    orchestrator = build_orchestrator(FakeCache(token), config, narrator=Narrator(client, "test-model"))

    report = await orchestrator.evaluate(token)
    await client.close()

    assert report.status == SessionStatus.COMPLETED
    assert report.verdict.decision == VerdictDecision.BUY
    assert len(report.trades) == 5
    assert all(t.status == TradeStatus.CONFIRMED for t in report.trades)
    assert report.transcript
    assert all(entry.fallback for entry in report.transcript)
