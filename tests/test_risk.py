"""Tests for strategy.risk."""
from datetime import timedelta

from helpers import make_swaps, make_token
from shared.schemas import utcnow
from strategy.risk import RiskScorer


def test_healthy_token_scores_below_baseline():
    token = make_token(holders=25_000, market_cap=100_000, liquidity=20_000)
    risk = RiskScorer().score(token, make_swaps(5, 5))
    # 50 - 5 (liquidity 20%) - 10 (holders > 500)
    assert risk.score == 35
    assert risk.flags == []


def test_brand_new_thin_token_pinned_to_max():
    token = make_token(
        holders=8, market_cap=100_000, liquidity=3_000,
        created_at=utcnow() - timedelta(minutes=30),
    )
    risk = RiskScorer().score(token)
    assert risk.score == 100
    assert risk.flags[0].startswith("Very low liquidity")
    assert "Only 8 holders" in risk.flags
    assert "Very new (<1h)" in risk.flags


def test_deep_liquidity_bonus():
    token = make_token(holders=100, market_cap=100_000, liquidity=40_000)
    assert RiskScorer().score(token).score == 40


def test_sell_pressure_and_dump_flags():
    token = make_token(holders=100, liquidity=20_000, price_change_24h=-55)
    risk = RiskScorer().score(token, make_swaps(2, 5))
    assert any(f.startswith("Heavy selling") for f in risk.flags)
    assert any(f.startswith("Major dump") for f in risk.flags)
    # 50 - 5 + 10 + 20
    assert risk.score == 75


def test_young_token_tiers():
    scorer = RiskScorer()
    now = utcnow()
    base = dict(holders=100, liquidity=20_000)
    assert scorer.score(make_token(created_at=now - timedelta(hours=3), **base), now=now).score == 55
    assert scorer.score(make_token(created_at=now - timedelta(hours=12), **base), now=now).score == 50
    assert scorer.score(make_token(created_at=now - timedelta(hours=30), **base), now=now).score == 45


def test_score_always_clamped():
    token = make_token(holders=0, market_cap=0, liquidity=0, price_change_24h=-90,
                       created_at=utcnow())
    risk = RiskScorer().score(token, make_swaps(0, 10))
    assert 0 <= risk.score <= 100


def test_deterministic():
    token = make_token(holders=42)
    swaps = make_swaps(1, 4)
    now = utcnow()
    assert RiskScorer().score(token, swaps, now) == RiskScorer().score(token, swaps, now)
