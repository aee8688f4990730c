"""Consensus vote tally."""
from typing import Mapping, Optional

from shared.schemas import Opinion, Verdict, VerdictDecision

DEFAULT_QUORUM = 3


class ConsensusVoter:
    """BUY when at least ``quorum`` personas are bullish, otherwise PASS. Pure."""

    def __init__(self, quorum: int = DEFAULT_QUORUM):
        if quorum < 1:
            raise ValueError("quorum must be at least 1")
        self.quorum = quorum

    def tally(
        self,
        final_opinions: Mapping[str, Opinion],
        weighted: Optional[Mapping[str, float]] = None,
        risk_score: float = 0.0,
    ) -> Verdict:
        opinions = dict(final_opinions)
        bullish = [pid for pid, o in opinions.items() if o == Opinion.BULLISH]
        bearish = sum(1 for o in opinions.values() if o == Opinion.BEARISH)
        decision = VerdictDecision.BUY if len(bullish) >= self.quorum else VerdictDecision.PASS
        return Verdict(
            decision=decision,
            opinions=opinions,
            bullish=len(bullish),
            bearish=bearish,
            neutral=len(opinions) - len(bullish) - bearish,
            quorum=self.quorum,
            confidence=self.confidence(bullish, weighted or {}, risk_score),
        )

    @staticmethod
    def confidence(bullish: list[str], weighted: Mapping[str, float], risk_score: float) -> float:
        """Mean bullish weighted score, discounted by half the risk score."""
        scores = [weighted[pid] for pid in bullish if pid in weighted]
        if not scores:
            return 0.0
        mean = sum(scores) / len(scores)
        return round(mean * (100 - risk_score / 2) / 100, 2)
