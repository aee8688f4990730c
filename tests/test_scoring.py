"""Tests for strategy.scoring and the persona profiles."""
from datetime import timedelta

import pytest
from pydantic import ValidationError

from council.personas import DEFAULT_PERSONAS, STERLING
from helpers import make_token
from shared.schemas import (
    ChartPattern,
    Direction,
    Opinion,
    PersonaProfile,
    RiskAssessment,
    TechnicalIndicators,
    Trend,
    utcnow,
)
from strategy.risk import RiskScorer
from strategy.scoring import (
    OpinionEngine,
    holder_score,
    liquidity_score,
    momentum_score,
    technical_score,
)


def _ta(**overrides):
    fields = dict(candle_count=30, price=1.0, rsi=60.0, sma_short=1.0, sma_long=1.0, trend=Trend.UP)
    fields.update(overrides)
    return TechnicalIndicators(**fields)


def test_holder_tiers():
    assert holder_score(25_000) == (95.0, "massive")
    assert holder_score(30_000) == (98.0, "legendary")
    assert holder_score(499) == (30.0, "tiny")


def test_liquidity_tiers():
    assert liquidity_score(0.20) == 90.0
    assert liquidity_score(0.08) == 55.0
    assert liquidity_score(0.01) == 20.0


def test_technical_score_neutral_without_indicators():
    assert technical_score(None) == 50.0


def test_technical_score_components():
    hammer = ChartPattern(name="Hammer", kind="candlestick", direction=Direction.BULLISH, confidence=70)
    # 50 + 10 (rsi 50-70) + 10 (up) + 7 (pattern net)
    assert technical_score(_ta(patterns=[hammer])) == pytest.approx(77.0)
    # 50 - 10 (overbought) - 20 (strong down)
    assert technical_score(_ta(rsi=80.0, trend=Trend.STRONG_DOWN)) == pytest.approx(20.0)


def test_momentum_score_clamped():
    token = make_token(price_change_24h=25.0)
    ta = _ta(volume_spike=True, buy_sell_ratio=2.0, trend=Trend.STRONG_UP)
    assert momentum_score(token, ta) == 100.0
    dumped = make_token(price_change_24h=-40.0)
    assert momentum_score(dumped, _ta(buy_sell_ratio=0.5, trend=Trend.DOWN)) == 0.0


def test_weights_must_sum_to_one():
    with pytest.raises(ValidationError):
        PersonaProfile(
            id="x", name="X", role="r",
            holder_weight=0.5, technical_weight=0.5, liquidity_weight=0.5, momentum_weight=0.0,
            bullish_threshold=50, bearish_threshold=30,
        )


def test_bearish_threshold_not_above_bullish():
    with pytest.raises(ValidationError):
        PersonaProfile(
            id="x", name="X", role="r",
            holder_weight=0.25, technical_weight=0.25, liquidity_weight=0.25, momentum_weight=0.25,
            bullish_threshold=30, bearish_threshold=50,
        )


def test_default_personas_are_valid():
    assert [p.id for p in DEFAULT_PERSONAS] == ["chad", "quantum", "sensei", "sterling", "oracle"]


def test_decide_boundaries():
    engine = OpinionEngine()
    scores = engine.score_token(make_token(), None, RiskAssessment(score=35))
    weighted = engine.weighted(STERLING, scores)
    assert weighted == pytest.approx(77.0)
    assert engine.decide(STERLING, scores) == Opinion.BULLISH


def test_established_token_is_bullish_for_everyone():
    token = make_token(holders=25_000, market_cap=100_000, liquidity=20_000)
    engine = OpinionEngine()
    scores = engine.score_token(token, _ta(rsi=62.0), RiskScorer().score(token))
    assert scores.holder == 95.0
    assert scores.liquidity == 90.0
    assert scores.technical == 70.0
    results = engine.score_all(DEFAULT_PERSONAS, scores)
    assert {r.opinion for r in results.values()} == {Opinion.BULLISH}


def test_fresh_thin_token_has_no_bulls():
    token = make_token(
        holders=8, market_cap=100_000, liquidity=3_000,
        created_at=utcnow() - timedelta(minutes=30),
    )
    engine = OpinionEngine()
    scores = engine.score_token(token, None, RiskScorer().score(token))
    results = engine.score_all(DEFAULT_PERSONAS, scores)
    assert scores.risk_score == 100
    assert all(r.opinion != Opinion.BULLISH for r in results.values())
    assert results["sterling"].opinion == Opinion.BEARISH


def test_opinions_are_deterministic():
    token = make_token(holders=1_500, liquidity=9_000)
    engine = OpinionEngine()
    risk = RiskScorer().score(token)
    first = engine.score_all(DEFAULT_PERSONAS, engine.score_token(token, _ta(), risk))
    second = engine.score_all(DEFAULT_PERSONAS, engine.score_token(token, _ta(), risk))
    assert first == second
