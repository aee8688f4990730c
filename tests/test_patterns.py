"""Tests for strategy.patterns."""
from helpers import make_candles
from shared.schemas import Candle, ChartPattern, Direction
from strategy.patterns import (
    detect_candlestick_patterns,
    detect_double_bottom,
    detect_double_top,
    dominant_signal,
)


def _candle(o, h, l, c, ts=0):
    return Candle(timestamp=ts, open=o, high=h, low=l, close=c, volume=100)


def _names(patterns):
    return {p.name for p in patterns}


def test_doji():
    candles = [_candle(1.0, 1.1, 0.9, 1.05), _candle(1.05, 1.1, 0.95, 1.0), _candle(1.0, 1.1, 0.9, 1.001)]
    assert "Doji" in _names(detect_candlestick_patterns(candles))


def test_hammer_at_recent_low():
    candles = [_candle(1.2, 1.25, 1.15, 1.18), _candle(1.18, 1.2, 1.1, 1.12),
               _candle(1.10, 1.112, 0.95, 1.11)]
    found = detect_candlestick_patterns(candles)
    assert "Hammer" in _names(found)
    hammer = next(p for p in found if p.name == "Hammer")
    assert hammer.direction == Direction.BULLISH
    assert hammer.confidence == 70


def test_bullish_engulfing():
    candles = [_candle(1.0, 1.01, 0.99, 1.0), _candle(1.10, 1.11, 1.04, 1.05),
               _candle(1.04, 1.16, 1.03, 1.15)]
    assert "Bullish Engulfing" in _names(detect_candlestick_patterns(candles))


def test_three_black_crows():
    candles = [_candle(1.30, 1.31, 1.19, 1.20), _candle(1.20, 1.21, 1.09, 1.10),
               _candle(1.10, 1.11, 0.99, 1.00)]
    found = detect_candlestick_patterns(candles)
    assert "Three Black Crows" in _names(found)
    assert "Three White Soldiers" not in _names(found)


def test_too_few_candles():
    assert detect_candlestick_patterns([_candle(1, 1.1, 0.9, 1.05)]) == []
    assert detect_double_top(make_candles([1.0] * 10)) is None


def test_double_top_recent_peaks():
    closes = [1.0, 1.02, 1.04, 1.06, 1.08, 1.2, 1.08, 1.06, 1.0, 0.98, 0.97,
              0.98, 1.0, 1.06, 1.08, 1.2, 1.08, 1.06, 1.04, 1.02, 1.01]
    candles = [_candle(c, c * 1.001, c * 0.999, c, ts=i) for i, c in enumerate(closes)]
    pattern = detect_double_top(candles)
    assert pattern is not None
    assert pattern.direction == Direction.BEARISH
    assert pattern.kind == "reversal"
    assert detect_double_bottom(candles) is None


def test_dominant_signal_needs_margin():
    bull = ChartPattern(name="Hammer", kind="candlestick", direction=Direction.BULLISH, confidence=70)
    bear = ChartPattern(name="Shooting Star", kind="candlestick", direction=Direction.BEARISH, confidence=70)
    soldiers = ChartPattern(name="Three White Soldiers", kind="candlestick",
                            direction=Direction.BULLISH, confidence=75)
    assert dominant_signal([bull]) == Direction.BULLISH
    assert dominant_signal([bull, bear]) == Direction.NEUTRAL
    assert dominant_signal([bull, bear, soldiers]) == Direction.BULLISH
    assert dominant_signal([]) == Direction.NEUTRAL
