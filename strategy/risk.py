"""Rule-based token risk scoring."""
from datetime import datetime
from typing import Optional, Sequence

from shared.schemas import RiskAssessment, SwapSide, SwapTrade, Token
from strategy.thresholds import RISK_BASELINE, SELL_PRESSURE_MULTIPLIER


class RiskScorer:
    """Deterministic 0-100 risk score (higher = riskier).

    Penalties add to the score and append a flag; bonuses only lower it.
    """

    def score(
        self,
        token: Token,
        swaps: Optional[Sequence[SwapTrade]] = None,
        now: Optional[datetime] = None,
    ) -> RiskAssessment:
        score = RISK_BASELINE
        flags: list[str] = []

        ratio = token.liquidity_ratio
        if ratio < 0.05:
            score += 20
            flags.append(f"Very low liquidity ({ratio * 100:.1f}%)")
        elif ratio < 0.15:
            score += 10
            flags.append(f"Low liquidity ({ratio * 100:.1f}%)")
        elif ratio > 0.30:
            score -= 10
        else:
            score -= 5

        if token.holders < 10:
            score += 25
            flags.append(f"Only {token.holders} holders")
        elif token.holders < 50:
            score += 15
            flags.append(f"{token.holders} holders")
        elif token.holders > 500:
            score -= 10

        age = token.age_hours(now)
        if age < 1:
            score += 15
            flags.append("Very new (<1h)")
        elif age < 6:
            score += 10
            flags.append("New (<6h)")
        elif age < 24:
            score += 5
            flags.append("Young (<24h)")

        if swaps:
            buys = sum(1 for s in swaps if s.side == SwapSide.BUY)
            sells = len(swaps) - buys
            if sells > SELL_PRESSURE_MULTIPLIER * buys:
                score += 10
                flags.append(f"Heavy selling ({sells} sells vs {buys} buys)")

        change = token.price_change_24h
        if change <= -50:
            score += 20
            flags.append(f"Major dump ({change:.0f}% 24h)")
        elif change <= -30:
            score += 10
            flags.append(f"Significant drop ({change:.0f}% 24h)")

        return RiskAssessment(score=max(0.0, min(100.0, score)), flags=flags)
