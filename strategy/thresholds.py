"""Named constants for the strategy layer."""

# Technical analysis
MIN_CANDLES = 10
RSI_PERIOD = 14
RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0
SMA_SHORT = 5
SMA_MID = 10
SMA_LONG = 20
# Recent-vs-older average close change (%) that separates up/strong-up trends
TREND_CHANGE_PCT = 3.0
STRONG_TREND_CHANGE_PCT = 10.0
VOLUME_WINDOW = 5
VOLUME_SPIKE_MULTIPLIER = 1.3
# Bullish pattern weight must beat bearish weight by more than this to dominate
PATTERN_DOMINANCE_MARGIN = 0.5

# Risk scoring
RISK_BASELINE = 50.0
SELL_PRESSURE_MULTIPLIER = 2.0

# Sub-score tiers, checked top-down: (minimum value, score)
HOLDER_TIERS = [
    (30000, 98.0, "legendary"),
    (20000, 95.0, "massive"),
    (10000, 90.0, "huge"),
    (5000, 80.0, "large"),
    (2000, 70.0, "solid"),
    (1000, 60.0, "growing"),
    (500, 50.0, "small"),
]
HOLDER_FLOOR = (30.0, "tiny")

LIQUIDITY_TIERS = [
    (0.20, 90.0),
    (0.15, 80.0),
    (0.10, 70.0),
    (0.07, 55.0),
    (0.05, 40.0),
]
LIQUIDITY_FLOOR = 20.0

NEUTRAL_SCORE = 50.0
PATTERN_SCORE_CAP = 15.0
BUY_SELL_RATIO_BULLISH = 1.5
BUY_SELL_RATIO_BEARISH = 0.67
PUMP_24H_PCT = 20.0
DUMP_24H_PCT = -30.0
