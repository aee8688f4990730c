"""Per-persona weighted opinion scoring.

Sub-scores are computed once per token and shared by every persona. A
persona's opinion is then a pure function of its profile and those scores,
so the debate only narrates a result it never computes.
"""
from typing import Iterable, Optional

from shared.schemas import (
    Opinion,
    PersonaProfile,
    PersonaScore,
    RiskAssessment,
    SubScores,
    TechnicalIndicators,
    Token,
    Trend,
)
from strategy.patterns import pattern_weights
from strategy.thresholds import (
    BUY_SELL_RATIO_BEARISH,
    BUY_SELL_RATIO_BULLISH,
    DUMP_24H_PCT,
    HOLDER_FLOOR,
    HOLDER_TIERS,
    LIQUIDITY_FLOOR,
    LIQUIDITY_TIERS,
    NEUTRAL_SCORE,
    PATTERN_SCORE_CAP,
    PUMP_24H_PCT,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
)

TREND_TECH_POINTS = {
    Trend.STRONG_UP: 20.0,
    Trend.UP: 10.0,
    Trend.SIDEWAYS: 0.0,
    Trend.DOWN: -10.0,
    Trend.STRONG_DOWN: -20.0,
}

TREND_MOMENTUM_POINTS = {
    Trend.STRONG_UP: 15.0,
    Trend.UP: 0.0,
    Trend.SIDEWAYS: 0.0,
    Trend.DOWN: -15.0,
    Trend.STRONG_DOWN: -15.0,
}


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def holder_score(holders: int) -> tuple[float, str]:
    for minimum, score, tier in HOLDER_TIERS:
        if holders >= minimum:
            return score, tier
    return HOLDER_FLOOR


def liquidity_score(ratio: float) -> float:
    for minimum, score in LIQUIDITY_TIERS:
        if ratio >= minimum:
            return score
    return LIQUIDITY_FLOOR


def technical_score(ta: Optional[TechnicalIndicators]) -> float:
    if ta is None:
        return NEUTRAL_SCORE
    score = NEUTRAL_SCORE
    if ta.rsi > RSI_OVERBOUGHT:
        score -= 10
    elif ta.rsi >= 50:
        score += 10
    elif ta.rsi < RSI_OVERSOLD:
        score += 5
    score += TREND_TECH_POINTS[ta.trend]
    bullish, bearish = pattern_weights(ta.patterns)
    net = (bullish - bearish) * 10
    score += max(-PATTERN_SCORE_CAP, min(PATTERN_SCORE_CAP, net))
    return _clamp(score)


def momentum_score(token: Token, ta: Optional[TechnicalIndicators]) -> float:
    score = NEUTRAL_SCORE
    if ta is not None:
        if ta.volume_spike:
            score += 15
        if ta.buy_sell_ratio >= BUY_SELL_RATIO_BULLISH:
            score += 15
        elif ta.buy_sell_ratio <= BUY_SELL_RATIO_BEARISH:
            score -= 20
        score += TREND_MOMENTUM_POINTS[ta.trend]
    if token.price_change_24h >= PUMP_24H_PCT:
        score += 10
    elif token.price_change_24h <= DUMP_24H_PCT:
        score -= 15
    return _clamp(score)


class OpinionEngine:
    """Maps sub-scores and persona weights to an Opinion. Side-effect free."""

    def score_token(
        self,
        token: Token,
        ta: Optional[TechnicalIndicators],
        risk: RiskAssessment,
    ) -> SubScores:
        holder, tier = holder_score(token.holders)
        return SubScores(
            holder=holder,
            technical=technical_score(ta),
            liquidity=liquidity_score(token.liquidity_ratio),
            momentum=momentum_score(token, ta),
            holder_tier=tier,
            technical_available=ta is not None,
            risk_score=risk.score,
        )

    @staticmethod
    def weighted(profile: PersonaProfile, scores: SubScores) -> float:
        return (
            profile.holder_weight * scores.holder
            + profile.technical_weight * scores.technical
            + profile.liquidity_weight * scores.liquidity
            + profile.momentum_weight * scores.momentum
        )

    def decide(self, profile: PersonaProfile, scores: SubScores) -> Opinion:
        value = self.weighted(profile, scores)
        if value >= profile.bullish_threshold:
            return Opinion.BULLISH
        if value < profile.bearish_threshold:
            return Opinion.BEARISH
        return Opinion.NEUTRAL

    def score_all(self, personas: Iterable[PersonaProfile], scores: SubScores) -> dict[str, PersonaScore]:
        return {
            p.id: PersonaScore(persona_id=p.id, weighted=self.weighted(p, scores), opinion=self.decide(p, scores))
            for p in personas
        }

