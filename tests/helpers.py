"""Test helpers shared across test files."""
import asyncio
from datetime import timedelta
from typing import Optional

from council.narrator import NarrativeUnavailable
from shared.llm_client import _merge_fields
from shared.schemas import (
    Candle,
    ExecutionReceipt,
    MarketSnapshot,
    PolicyDecision,
    RevisionDecision,
    SwapSide,
    SwapTrade,
    Token,
    TranscriptKind,
    utcnow,
)


def mcr(response="", thinking="", eval_count=0, eval_duration=0):
    """Build a mock Ollama chat return dict with merged field.

    Use instead of raw dicts so mocks match LLMClient.chat_async() format.
    Short name (mock chat response) for compact test code.
    """
    return {
        "response": response,
        "thinking": thinking,
        "merged": _merge_fields(response, thinking),
        "eval_count": eval_count,
        "eval_duration": eval_duration,
    }


def make_token(**overrides) -> Token:
    fields = dict(
        address="0xabc",
        symbol="TEST",
        name="Test Token",
        price=0.0001,
        market_cap=100_000.0,
        liquidity=20_000.0,
        holders=25_000,
        created_at=utcnow() - timedelta(hours=48),
        price_change_24h=0.0,
    )
    fields.update(overrides)
    return Token(**fields)


def make_snapshot(token: Token) -> MarketSnapshot:
    return MarketSnapshot(
        address=token.address, symbol=token.symbol, name=token.name,
        price=token.price, market_cap=token.market_cap, liquidity=token.liquidity,
        holders=token.holders, price_change_24h=token.price_change_24h,
        created_at=token.created_at,
    )


def make_candles(closes, volumes=None) -> list[Candle]:
    """Candles whose open is the previous close, with small wicks."""
    volumes = volumes or [100.0] * len(closes)
    candles = []
    prev = closes[0]
    for i, (close, vol) in enumerate(zip(closes, volumes)):
        top, bottom = max(prev, close), min(prev, close)
        candles.append(Candle(
            timestamp=1_700_000_000 + i * 300,
            open=prev, high=top * 1.001, low=bottom * 0.999, close=close, volume=vol,
        ))
        prev = close
    return candles


def make_swaps(buys: int, sells: int, amount: float = 1.0) -> list[SwapTrade]:
    return (
        [SwapTrade(side=SwapSide.BUY, native_amount=amount, timestamp=i) for i in range(buys)]
        + [SwapTrade(side=SwapSide.SELL, native_amount=amount, timestamp=i) for i in range(sells)]
    )


class ScriptedNarrator:
    """Narrator double: canned lines, scripted revisions, optional failure or stall."""

    def __init__(self, revisions=None, fail=False, stall_round: Optional[int] = None):
        self.revisions = revisions or {}
        self.fail = fail
        self.stall_round = stall_round
        self.stalled = asyncio.Event()
        self.calls = []

    async def _maybe_stall(self, kind):
        if self.stall_round is not None and kind == TranscriptKind.CHALLENGE:
            self._round = getattr(self, "_round", 0) + 1
            if self._round >= self.stall_round:
                self.stalled.set()
                await asyncio.Event().wait()

    async def speak(self, profile, opinion, kind, context, transcript, target=None, focus="", focus_score=0.0):
        self.calls.append(("speak", profile.id, kind))
        await self._maybe_stall(kind)
        if self.fail:
            raise NarrativeUnavailable("down")
        return f"{profile.name} {kind.value} {opinion.value}"

    async def revise(self, profile, opinion, context, transcript):
        self.calls.append(("revise", profile.id, None))
        if self.fail:
            raise NarrativeUnavailable("down")
        new = self.revisions.get(profile.id)
        if new is None or new == opinion:
            return RevisionDecision(changed=False, text=f"{profile.name} holds")
        return RevisionDecision(changed=True, new_opinion=new, text=f"{profile.name} flips to {new.value}")


class FakeCache:
    """In-memory stand-in for MarketDataCache."""

    def __init__(self, token: Optional[Token] = None, candles=None, swaps=None, tokens=None):
        self.tokens = dict(tokens or {})
        if token is not None:
            self.tokens[token.address] = token
        self.candles = candles
        self.swaps = swaps

    async def get(self, address):
        token = self.tokens.get(address)
        return make_snapshot(token) if token else None

    async def get_token(self, address):
        return self.tokens.get(address)

    async def get_candles(self, address, resolution="5", countback=100):
        return self.candles

    async def get_swap_history(self, address, limit=None):
        return self.swaps


class FakeGate:
    def __init__(self, balances=None, rejected=None):
        self.balances = balances or {}
        self.rejected = rejected or {}

    async def can_trade(self, persona_id):
        if persona_id in self.rejected:
            return PolicyDecision(allowed=False, reason=self.rejected[persona_id])
        return PolicyDecision(allowed=True)

    async def get_balance(self, persona_id):
        return self.balances.get(persona_id, 10.0)


class FakeExecutor:
    def __init__(self, failing=(), delay: float = 0.0):
        self.failing = set(failing)
        self.delay = delay
        self.calls = []

    async def buy(self, persona_id, token_address, amount_in, session_id=""):
        self.calls.append((persona_id, token_address, amount_in))
        if self.delay:
            await asyncio.sleep(self.delay)
        if persona_id in self.failing:
            raise RuntimeError("execution reverted")
        return ExecutionReceipt(amount_out=amount_in * 1000, tx_id=f"tx-{persona_id}")


def build_orchestrator(cache, config, narrator=None, executor=None, gate=None, events=None):
    """Wire a CouncilOrchestrator from real council parts and test doubles."""
    import random

    from council.debate import DebateCoordinator
    from council.orchestrator import CouncilOrchestrator
    from council.personas import DEFAULT_PERSONAS
    from council.voting import ConsensusVoter
    from execution.trade_coordinator import TradeCoordinator
    from shared.events import EventBus

    events = events or EventBus()
    debate = DebateCoordinator(
        narrator or ScriptedNarrator(), events,
        rng=random.Random(config.DEBATE_SEED),
        revision_probability=config.REVISION_PROBABILITY,
    )
    trader = TradeCoordinator(executor or FakeExecutor(), gate or FakeGate(), events, config)
    return CouncilOrchestrator(
        cache, debate, ConsensusVoter(config.QUORUM), trader, events,
        DEFAULT_PERSONAS, max_rounds=config.MAX_ROUNDS,
    )
