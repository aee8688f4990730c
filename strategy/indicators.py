"""Technical indicators computed from candle and swap history."""
import logging
from typing import Optional, Sequence

from shared.schemas import Candle, Direction, SwapSide, SwapTrade, TechnicalIndicators, Trend
from strategy.patterns import detect_patterns, dominant_signal
from strategy.thresholds import (
    MIN_CANDLES,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    RSI_PERIOD,
    SMA_LONG,
    SMA_MID,
    SMA_SHORT,
    STRONG_TREND_CHANGE_PCT,
    TREND_CHANGE_PCT,
    VOLUME_SPIKE_MULTIPLIER,
    VOLUME_WINDOW,
)

logger = logging.getLogger(__name__)

# Returned instead of indicators when there is too little history.
INSUFFICIENT = None


def wilder_rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> float:
    """RSI with Wilder smoothing. Neutral 50 when the series is too short."""
    if len(closes) < period + 1:
        return 50.0
    changes = [b - a for a, b in zip(closes, closes[1:])]
    avg_gain = sum(c for c in changes[:period] if c > 0) / period
    avg_loss = sum(-c for c in changes[:period] if c < 0) / period
    for change in changes[period:]:
        avg_gain = (avg_gain * (period - 1) + max(change, 0.0)) / period
        avg_loss = (avg_loss * (period - 1) + max(-change, 0.0)) / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def sma(values: Sequence[float], period: int) -> float:
    """Simple moving average of the last ``period`` values (last value if too few)."""
    if not values:
        return 0.0
    if len(values) < period:
        return values[-1]
    window = values[-period:]
    return sum(window) / period


def classify_trend(closes: Sequence[float]) -> Trend:
    price = closes[-1]
    ma_short, ma_mid, ma_long = sma(closes, SMA_SHORT), sma(closes, SMA_MID), sma(closes, SMA_LONG)
    recent = closes[-10:]
    older = closes[-20:-10]
    recent_avg = sum(recent) / len(recent)
    older_avg = sum(older) / len(older) if older else recent_avg
    change = (recent_avg - older_avg) / older_avg * 100 if older_avg else 0.0

    above_all = price > ma_short and price > ma_mid and price > ma_long
    below_all = price < ma_short and price < ma_mid and price < ma_long
    if above_all and change > STRONG_TREND_CHANGE_PCT:
        return Trend.STRONG_UP
    if above_all and change > TREND_CHANGE_PCT:
        return Trend.UP
    if below_all and change < -STRONG_TREND_CHANGE_PCT:
        return Trend.STRONG_DOWN
    if below_all and change < -TREND_CHANGE_PCT:
        return Trend.DOWN
    return Trend.SIDEWAYS


def volume_profile(volumes: Sequence[float]) -> tuple[float, bool]:
    """(recent/prior average volume ratio, spike flag)."""
    recent = volumes[-VOLUME_WINDOW:]
    prior = volumes[-2 * VOLUME_WINDOW:-VOLUME_WINDOW]
    if not recent or not prior:
        return 1.0, False
    recent_avg = sum(recent) / len(recent)
    prior_avg = sum(prior) / len(prior)
    if prior_avg <= 0:
        return (1.0, False) if recent_avg <= 0 else (float(VOLUME_SPIKE_MULTIPLIER * 2), True)
    ratio = recent_avg / prior_avg
    return ratio, ratio > VOLUME_SPIKE_MULTIPLIER


def order_flow(swaps: Sequence[SwapTrade]) -> tuple[int, int, float, float]:
    """(buy count, sell count, buy/sell ratio, buy pressure %)."""
    buys = [s for s in swaps if s.side == SwapSide.BUY]
    sells = [s for s in swaps if s.side == SwapSide.SELL]
    if sells:
        ratio = len(buys) / len(sells)
    else:
        ratio = float(len(buys)) if buys else 1.0
    buy_volume = sum(s.native_amount for s in buys)
    total = buy_volume + sum(s.native_amount for s in sells)
    pressure = buy_volume / total * 100 if total > 0 else 50.0
    return len(buys), len(sells), ratio, pressure


def ma_crossover(closes: Sequence[float]) -> str:
    if len(closes) < 2:
        return "none"
    prev = closes[:-1]
    prev_short, prev_long = sma(prev, SMA_SHORT), sma(prev, SMA_LONG)
    cur_short, cur_long = sma(closes, SMA_SHORT), sma(closes, SMA_LONG)
    if prev_short < prev_long and cur_short > cur_long:
        return "golden_cross"
    if prev_short > prev_long and cur_short < cur_long:
        return "death_cross"
    return "none"


class TechnicalAnalyzer:
    """Pure function of its inputs. No I/O."""

    def __init__(self, min_candles: int = MIN_CANDLES):
        self.min_candles = min_candles

    def analyze(
        self,
        candles: Optional[Sequence[Candle]],
        swaps: Optional[Sequence[SwapTrade]] = None,
    ) -> Optional[TechnicalIndicators]:
        if not candles or len(candles) < self.min_candles:
            logger.debug("Not enough candles for analysis", extra={
                "candles": len(candles or []),
            })
            return INSUFFICIENT

        candles = list(candles)
        closes = [c.close for c in candles]
        volumes = [c.volume for c in candles]

        rsi = wilder_rsi(closes)
        rsi_zone = "overbought" if rsi > RSI_OVERBOUGHT else "oversold" if rsi < RSI_OVERSOLD else "neutral"
        crossover = ma_crossover(closes)
        trend = classify_trend(closes)
        volume_ratio, volume_spike = volume_profile(volumes)
        buy_count, sell_count, bs_ratio, pressure = order_flow(swaps or [])
        patterns = detect_patterns(candles)
        pattern_signal = dominant_signal(patterns)

        bullish, bearish = [], []
        if rsi_zone == "oversold":
            bullish.append(f"RSI {rsi:.0f} oversold")
        elif rsi_zone == "overbought":
            bearish.append(f"RSI {rsi:.0f} overbought")
        if crossover == "golden_cross":
            bullish.append("Golden cross")
        elif crossover == "death_cross":
            bearish.append("Death cross")
        if volume_spike:
            (bullish if closes[-1] >= closes[-VOLUME_WINDOW] else bearish).append(
                f"Volume spike {volume_ratio:.1f}x"
            )
        if trend in (Trend.UP, Trend.STRONG_UP):
            bullish.append(f"Trend {trend.value}")
        elif trend in (Trend.DOWN, Trend.STRONG_DOWN):
            bearish.append(f"Trend {trend.value}")
        if swaps and pressure >= 60:
            bullish.append(f"Buy pressure {pressure:.0f}%")
        elif swaps and pressure <= 40:
            bearish.append(f"Sell pressure {100 - pressure:.0f}%")
        for p in patterns:
            if p.direction == Direction.BULLISH:
                bullish.append(p.name)
            elif p.direction == Direction.BEARISH:
                bearish.append(p.name)

        return TechnicalIndicators(
            candle_count=len(candles),
            price=closes[-1],
            rsi=rsi,
            rsi_zone=rsi_zone,
            sma_short=sma(closes, SMA_SHORT),
            sma_long=sma(closes, SMA_LONG),
            ma_crossover=crossover,
            trend=trend,
            volume_ratio=volume_ratio,
            volume_spike=volume_spike,
            buy_count=buy_count,
            sell_count=sell_count,
            buy_sell_ratio=bs_ratio,
            buy_pressure=pressure,
            patterns=patterns,
            pattern_signal=pattern_signal,
            bullish_factors=bullish,
            bearish_factors=bearish,
        )
