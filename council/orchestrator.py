"""Orchestrator: runs one token through data, debate, vote and trades."""
import asyncio
import logging
import time
from typing import Iterable, Optional

from council.debate import DebateCoordinator
from council.session import DebateSession, SessionPhase
from council.voting import ConsensusVoter
from execution.trade_coordinator import TradeCoordinator
from feeds.market_cache import MarketDataCache
from shared.events import EventBus, EventKind
from shared.schemas import PersonaProfile, SessionReport, SessionStatus, Token
from strategy.indicators import TechnicalAnalyzer
from strategy.risk import RiskScorer

logger = logging.getLogger(__name__)


class CouncilOrchestrator:
    """Runs the council pipeline for a single token, one phase after another."""

    def __init__(
        self,
        cache: MarketDataCache,
        debate: DebateCoordinator,
        voter: ConsensusVoter,
        trader: TradeCoordinator,
        events: EventBus,
        personas: Iterable[PersonaProfile],
        max_rounds: int = 3,
        analyzer: Optional[TechnicalAnalyzer] = None,
        risk_scorer: Optional[RiskScorer] = None,
    ):
        self.cache = cache
        self.debate = debate
        self.voter = voter
        self.trader = trader
        self.events = events
        self.personas = tuple(personas)
        self.max_rounds = max_rounds
        self.analyzer = analyzer or TechnicalAnalyzer()
        self.risk_scorer = risk_scorer or RiskScorer()
        self.current: Optional[DebateSession] = None

    async def evaluate(self, token: Token) -> SessionReport:
        """Run the full pipeline. Cancellation interrupts it between awaits."""
        start = time.monotonic()
        session = DebateSession(token, self.personas, max_rounds=self.max_rounds)
        self.current = session
        self.events.emit(
            EventKind.SESSION_STARTED, session_id=session.id, token_address=token.address,
            payload={"symbol": token.symbol, "phase": session.phase},
        )
        try:
            await self._gather(session)
            votes = await self.debate.run(session)

            verdict = self.voter.tally(votes, session.weighted, session.risk.score)
            session.verdict = verdict
            logger.info(
                "Council: verdict",
                extra={
                    "session_id": session.id,
                    "token": session.token.symbol,
                    "decision": verdict.decision,
                    "bullish": verdict.bullish,
                    "bearish": verdict.bearish,
                    "confidence": verdict.confidence,
                },
            )
            self.events.emit(
                EventKind.VERDICT_REACHED, session_id=session.id, token_address=token.address,
                payload={
                    "decision": verdict.decision,
                    "bullish": verdict.bullish,
                    "bearish": verdict.bearish,
                    "neutral": verdict.neutral,
                    "confidence": verdict.confidence,
                },
            )

            await self.trader.execute(session, verdict)
            session.close()
            return self._finish(session, SessionStatus.COMPLETED, EventKind.SESSION_COMPLETED, start)

        except asyncio.CancelledError:
            logger.info("Council: session interrupted", extra={
                "session_id": session.id, "token": token.symbol,
                "phase": session.phase, "round": session.round,
            })
            self._finish(session, SessionStatus.INTERRUPTED, EventKind.SESSION_INTERRUPTED, start)
            raise
        except Exception as e:
            self._finish(session, SessionStatus.FAILED, EventKind.SESSION_FAILED, start, error=str(e))
            raise
        finally:
            self.current = None

    async def _gather(self, session: DebateSession) -> None:
        """Refresh market facts and compute indicators and risk."""
        address = session.token.address
        fresh = await self.cache.get(address)
        if fresh is not None:
            session.token = session.token.with_market(fresh)
        candles = await self.cache.get_candles(address)
        swaps = await self.cache.get_swap_history(address)

        session.indicators = self.analyzer.analyze(candles, swaps)
        session.risk = self.risk_scorer.score(session.token, swaps)
        logger.info(
            "Council: data gathered",
            extra={
                "session_id": session.id,
                "token": session.token.symbol,
                "candles": len(candles or []),
                "technicals": session.indicators is not None,
                "risk_score": session.risk.score,
            },
        )
        self.events.emit(
            EventKind.RISK_ASSESSED, session_id=session.id, token_address=address,
            payload={
                "score": session.risk.score,
                "flags": session.risk.flags,
                "technicals": session.indicators is not None,
            },
        )

    def _finish(
        self,
        session: DebateSession,
        status: SessionStatus,
        kind: EventKind,
        start: float,
        error: Optional[str] = None,
    ) -> SessionReport:
        verdict = session.verdict
        report = SessionReport(
            session_id=session.id,
            token=session.token,
            status=status,
            risk=session.risk,
            indicators=session.indicators,
            scores=session.scores,
            verdict=verdict,
            trades=list(session.trades),
            transcript=list(session.transcript),
            rounds=session.round,
            total_latency_ms=(time.monotonic() - start) * 1000,
        )
        payload = {
            "session_id": session.id,
            "token_address": session.token.address,
            "symbol": session.token.symbol,
            "status": status.value,
            "phase": session.phase.value,
            "decision": verdict.decision.value if verdict else None,
            "bullish": verdict.bullish if verdict else 0,
            "bearish": verdict.bearish if verdict else 0,
            "neutral": verdict.neutral if verdict else 0,
            "risk_score": session.risk.score if session.risk else None,
            "confidence": verdict.confidence if verdict else 0.0,
            "rounds": session.round,
            "trades": len(session.trades),
        }
        if error:
            payload["error"] = error
        self.events.emit(kind, session_id=session.id, token_address=session.token.address, payload=payload)
        if status == SessionStatus.COMPLETED:
            logger.info("Council: session complete", extra={
                "session_id": session.id,
                "latency_ms": round(report.total_latency_ms),
                "phase": SessionPhase.CLOSED,
            })
        return report
