"""Turns a BUY verdict into one trade attempt per bullish persona."""
import asyncio
import logging
from typing import Optional, Protocol

from council.session import DebateSession
from shared.config import Config
from shared.events import EventBus, EventKind
from shared.schemas import (
    ExecutionReceipt,
    PersonaProfile,
    PolicyDecision,
    TradeIntent,
    TradeResult,
    TradeStatus,
    Verdict,
    VerdictDecision,
)

logger = logging.getLogger(__name__)


class TradeExecutor(Protocol):
    async def buy(self, persona_id: str, token_address: str, amount_in: float,
                  session_id: str = "") -> ExecutionReceipt: ...


class BalancePolicyGate(Protocol):
    async def can_trade(self, persona_id: str) -> PolicyDecision: ...

    async def get_balance(self, persona_id: str) -> float: ...


class TradeCoordinator:
    """Sequential, independent trade attempts for the bullish personas.

    Each persona gets exactly one TradeResult per session. A rejection or
    failure for one persona never blocks or rolls back another.
    """

    def __init__(self, executor: TradeExecutor, gate: BalancePolicyGate, events: EventBus, config: Config):
        self.executor = executor
        self.gate = gate
        self.events = events
        self.min_balance = config.MIN_TRADE_BALANCE
        self.min_size = config.MIN_TRADE_SIZE

    @staticmethod
    def size(profile: PersonaProfile, balance: float, confidence: float) -> float:
        raw = balance * profile.trade_fraction * confidence / 100
        return round(min(raw, profile.max_trade_size), 2)

    async def execute(self, session: DebateSession, verdict: Verdict) -> list[TradeResult]:
        if verdict.decision != VerdictDecision.BUY:
            return session.trades
        done = {r.persona_id for r in session.trades}
        for pid in verdict.bullish_personas():
            if pid in done:
                continue
            await self._trade_one(session, session.personas[pid], verdict)
        return session.trades

    async def _trade_one(self, session: DebateSession, profile: PersonaProfile, verdict: Verdict) -> TradeResult:
        address = session.token.address
        try:
            policy = await self.gate.can_trade(profile.id)
            if not policy.allowed:
                return self._record(session, TradeResult(
                    persona_id=profile.id, token_address=address,
                    status=TradeStatus.SKIPPED, reason=policy.reason or "rejected by policy",
                ))

            balance = await self.gate.get_balance(profile.id)
            if balance < self.min_balance:
                return self._record(session, TradeResult(
                    persona_id=profile.id, token_address=address,
                    status=TradeStatus.SKIPPED, reason=f"no funds ({balance:.2f} MON)",
                ))

            amount = self.size(profile, balance, verdict.confidence)
            if amount < self.min_size:
                return self._record(session, TradeResult(
                    persona_id=profile.id, token_address=address, status=TradeStatus.SKIPPED,
                    reason=f"size {amount:.2f} below minimum {self.min_size:.2f}",
                ))
        except Exception as e:
            logger.error(f"Trade pre-check failed: {e}", extra={"persona": profile.id, "token": address})
            return self._record(session, TradeResult(
                persona_id=profile.id, token_address=address,
                status=TradeStatus.FAILED, reason=f"pre-check error: {e}",
            ))

        intent = TradeIntent(
            persona_id=profile.id, token_address=address,
            amount_in=amount, confidence=verdict.confidence,
        )
        buy = asyncio.ensure_future(
            self.executor.buy(profile.id, address, amount, session_id=session.id)
        )
        # asyncio.wait never cancels the buy, so an interrupted session still
        # lets a submitted order finish
        try:
            await asyncio.wait([buy])
        except asyncio.CancelledError:
            await asyncio.wait([buy])
            self._record(session, self._settle(intent, buy))
            raise
        return self._record(session, self._settle(intent, buy))

    @staticmethod
    def _settle(intent: TradeIntent, buy: asyncio.Future) -> TradeResult:
        error: Optional[BaseException] = buy.exception() if not buy.cancelled() else asyncio.CancelledError()
        if error is not None:
            logger.error(f"Trade failed: {error}", extra={
                "persona": intent.persona_id, "token": intent.token_address, "amount_in": intent.amount_in,
            })
            return TradeResult(
                persona_id=intent.persona_id, token_address=intent.token_address,
                status=TradeStatus.FAILED, amount_in=intent.amount_in,
                reason=str(error) or type(error).__name__,
            )
        receipt = buy.result()
        return TradeResult(
            persona_id=intent.persona_id, token_address=intent.token_address,
            status=TradeStatus.CONFIRMED, amount_in=intent.amount_in,
            amount_out=receipt.amount_out, tx_id=receipt.tx_id,
        )

    def _record(self, session: DebateSession, result: TradeResult) -> TradeResult:
        session.trades.append(result)
        logger.info("Trade outcome", extra={
            "session_id": session.id, "persona": result.persona_id,
            "status": result.status, "amount_in": result.amount_in, "reason": result.reason,
        })
        self.events.emit(
            EventKind.TRADE_OUTCOME, session_id=session.id, token_address=result.token_address,
            persona_id=result.persona_id, payload=result.model_dump(mode="json"),
        )
        if result.status == TradeStatus.CONFIRMED:
            self.events.emit(
                EventKind.POSITION_OPENED, session_id=session.id, token_address=result.token_address,
                persona_id=result.persona_id,
                payload={"amount_in": result.amount_in, "amount_out": result.amount_out, "tx_id": result.tx_id},
            )
        return result
