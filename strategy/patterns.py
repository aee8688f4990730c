"""Chart-pattern detection over OHLCV candles."""
from typing import Optional

from shared.schemas import Candle, ChartPattern, Direction
from strategy.thresholds import PATTERN_DOMINANCE_MARGIN


def _local_maxima(values: list[float], order: int = 3) -> list[int]:
    return [
        i for i in range(order, len(values) - order)
        if all(values[i] > values[i - j] and values[i] > values[i + j] for j in range(1, order + 1))
    ]


def _local_minima(values: list[float], order: int = 3) -> list[int]:
    return [
        i for i in range(order, len(values) - order)
        if all(values[i] < values[i - j] and values[i] < values[i + j] for j in range(1, order + 1))
    ]


def _percent_diff(a: float, b: float) -> float:
    mean = (a + b) / 2
    if mean == 0:
        return float("inf")
    return abs(a - b) / mean * 100


def detect_double_top(candles: list[Candle]) -> Optional[ChartPattern]:
    if len(candles) < 20:
        return None
    highs = [c.high for c in candles]
    peaks = _local_maxima(highs)
    if len(peaks) < 2:
        return None
    p1, p2 = peaks[-2], peaks[-1]
    if _percent_diff(highs[p1], highs[p2]) > 3:
        return None
    valley = min(c.low for c in candles[p1:p2 + 1])
    peak_avg = (highs[p1] + highs[p2]) / 2
    if peak_avg <= 0 or (peak_avg - valley) / peak_avg * 100 < 5:
        return None
    # second peak must be recent
    if p2 < len(candles) - 8:
        return None
    breakdown = candles[-1].close < valley
    return ChartPattern(
        name="Double Top",
        kind="reversal",
        direction=Direction.BEARISH,
        confidence=80 if breakdown else 60,
        description="Double top confirmed, support broken" if breakdown
        else "Double top forming, watch support",
    )


def detect_double_bottom(candles: list[Candle]) -> Optional[ChartPattern]:
    if len(candles) < 20:
        return None
    lows = [c.low for c in candles]
    troughs = _local_minima(lows)
    if len(troughs) < 2:
        return None
    b1, b2 = troughs[-2], troughs[-1]
    if _percent_diff(lows[b1], lows[b2]) > 3:
        return None
    peak = max(c.high for c in candles[b1:b2 + 1])
    bottom_avg = (lows[b1] + lows[b2]) / 2
    if bottom_avg <= 0 or (peak - bottom_avg) / bottom_avg * 100 < 5:
        return None
    if b2 < len(candles) - 8:
        return None
    breakout = candles[-1].close > peak
    return ChartPattern(
        name="Double Bottom",
        kind="reversal",
        direction=Direction.BULLISH,
        confidence=80 if breakout else 60,
        description="Double bottom confirmed, breakout above resistance" if breakout
        else "Double bottom forming, watch resistance",
    )


def _body(c: Candle) -> float:
    return abs(c.close - c.open)


def _range(c: Candle) -> float:
    return c.high - c.low


def _upper_wick(c: Candle) -> float:
    return c.high - max(c.open, c.close)


def _lower_wick(c: Candle) -> float:
    return min(c.open, c.close) - c.low


def _is_green(c: Candle) -> bool:
    return c.close > c.open


def _candlestick(name: str, direction: Direction, confidence: float, description: str) -> ChartPattern:
    return ChartPattern(
        name=name, kind="candlestick", direction=direction,
        confidence=confidence, description=description,
    )


def detect_candlestick_patterns(candles: list[Candle]) -> list[ChartPattern]:
    if len(candles) < 3:
        return []
    patterns = []
    prev2, prev, last = candles[-3], candles[-2], candles[-1]
    body = _body(last)

    if _range(last) > 0 and body < _range(last) * 0.1:
        patterns.append(_candlestick("Doji", Direction.NEUTRAL, 60, "Market indecision"))

    if body > 0 and _lower_wick(last) > body * 2 and _upper_wick(last) < body * 0.5:
        if last.low <= min(c.low for c in candles[-10:]) * 1.02:
            patterns.append(_candlestick("Hammer", Direction.BULLISH, 70, "Hammer at support"))

    if body > 0 and _upper_wick(last) > body * 2 and _lower_wick(last) < body * 0.5:
        if last.high >= max(c.high for c in candles[-10:]) * 0.98:
            patterns.append(_candlestick("Shooting Star", Direction.BEARISH, 70, "Shooting star at resistance"))

    prev_body = _body(prev)
    if (prev_body > 0 and not _is_green(prev) and _is_green(last)
            and last.open < prev.close and last.close > prev.open and body > prev_body * 1.5):
        patterns.append(_candlestick("Bullish Engulfing", Direction.BULLISH, 75, "Buyers swallowed the last red candle"))

    if (prev_body > 0 and _is_green(prev) and not _is_green(last)
            and last.open > prev.close and last.close < prev.open and body > prev_body * 1.5):
        patterns.append(_candlestick("Bearish Engulfing", Direction.BEARISH, 75, "Sellers swallowed the last green candle"))

    last3 = [prev2, prev, last]
    if all(_range(c) > 0 and _is_green(c) and _body(c) > _range(c) * 0.6 for c in last3):
        if prev2.close < prev.close < last.close:
            patterns.append(_candlestick("Three White Soldiers", Direction.BULLISH, 75, "Three strong green candles"))

    if all(_range(c) > 0 and not _is_green(c) and _body(c) > _range(c) * 0.6 for c in last3):
        if prev2.close > prev.close > last.close:
            patterns.append(_candlestick("Three Black Crows", Direction.BEARISH, 75, "Three strong red candles"))

    return patterns


def detect_patterns(candles: list[Candle]) -> list[ChartPattern]:
    """Every pattern present in the series. Several may coexist."""
    patterns = []
    for detector in (detect_double_top, detect_double_bottom):
        found = detector(candles)
        if found:
            patterns.append(found)
    patterns.extend(detect_candlestick_patterns(candles))
    return patterns


def pattern_weights(patterns: list[ChartPattern]) -> tuple[float, float]:
    """Confidence-weighted (bullish, bearish) sums."""
    bullish = sum(p.confidence / 100 for p in patterns if p.direction == Direction.BULLISH)
    bearish = sum(p.confidence / 100 for p in patterns if p.direction == Direction.BEARISH)
    return bullish, bearish


def dominant_signal(patterns: list[ChartPattern]) -> Direction:
    bullish, bearish = pattern_weights(patterns)
    if bullish > bearish + PATTERN_DOMINANCE_MARGIN:
        return Direction.BULLISH
    if bearish > bullish + PATTERN_DOMINANCE_MARGIN:
        return Direction.BEARISH
    return Direction.NEUTRAL
