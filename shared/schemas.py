"""Pydantic models for all data flowing through the council pipeline."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Opinion(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Direction(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Trend(str, Enum):
    STRONG_UP = "strong_up"
    UP = "up"
    SIDEWAYS = "sideways"
    DOWN = "down"
    STRONG_DOWN = "strong_down"


class MarketSnapshot(BaseModel):
    """Point-in-time market facts for one token from the data provider."""
    model_config = ConfigDict(frozen=True)

    address: str
    symbol: str = "UNKNOWN"
    name: str = "Unknown"
    price: float = 0.0
    market_cap: float = 0.0
    liquidity: float = 0.0
    holders: int = 0
    volume_24h: float = 0.0
    price_change_24h: float = 0.0
    created_at: Optional[datetime] = None
    fetched_at: datetime = Field(default_factory=utcnow)


class Token(BaseModel):
    """Immutable token snapshot evaluated by one session."""
    model_config = ConfigDict(frozen=True)

    address: str
    symbol: str
    name: str = ""
    price: float = 0.0
    market_cap: float = 0.0
    liquidity: float = 0.0
    holders: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    price_change_24h: float = 0.0
    volume_24h: float = 0.0

    @property
    def liquidity_ratio(self) -> float:
        if self.market_cap <= 0:
            return 0.0
        return self.liquidity / self.market_cap

    def age_hours(self, now: Optional[datetime] = None) -> float:
        now = now or utcnow()
        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return max(0.0, (now - created).total_seconds() / 3600.0)

    def with_market(self, snapshot: MarketSnapshot) -> "Token":
        """Return a new snapshot carrying refreshed market facts."""
        return self.model_copy(update={
            "price": snapshot.price,
            "market_cap": snapshot.market_cap,
            "liquidity": snapshot.liquidity,
            "holders": snapshot.holders,
            "volume_24h": snapshot.volume_24h,
            "price_change_24h": snapshot.price_change_24h,
        })

    @classmethod
    def from_snapshot(cls, snapshot: MarketSnapshot) -> "Token":
        return cls(
            address=snapshot.address,
            symbol=snapshot.symbol,
            name=snapshot.name,
            price=snapshot.price,
            market_cap=snapshot.market_cap,
            liquidity=snapshot.liquidity,
            holders=snapshot.holders,
            created_at=snapshot.created_at or snapshot.fetched_at,
            price_change_24h=snapshot.price_change_24h,
            volume_24h=snapshot.volume_24h,
        )


class Candle(BaseModel):
    """One OHLCV bar."""
    model_config = ConfigDict(frozen=True)

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class SwapSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class SwapTrade(BaseModel):
    model_config = ConfigDict(frozen=True)

    side: SwapSide
    native_amount: float = 0.0
    timestamp: int = 0


class ChartPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    kind: str  # "reversal" or "candlestick"
    direction: Direction
    confidence: float = Field(ge=0.0, le=100.0)
    description: str = ""


class TechnicalIndicators(BaseModel):
    """Indicators derived from one token's candle and swap history."""
    model_config = ConfigDict(frozen=True)

    candle_count: int
    price: float
    rsi: float = Field(ge=0.0, le=100.0)
    rsi_zone: str = "neutral"  # "overbought", "oversold" or "neutral"
    sma_short: float
    sma_long: float
    ma_crossover: str = "none"  # "golden_cross", "death_cross" or "none"
    trend: Trend
    volume_ratio: float = 1.0
    volume_spike: bool = False
    buy_count: int = 0
    sell_count: int = 0
    buy_sell_ratio: float = 1.0
    buy_pressure: float = 50.0
    patterns: list[ChartPattern] = Field(default_factory=list)
    pattern_signal: Direction = Direction.NEUTRAL
    bullish_factors: list[str] = Field(default_factory=list)
    bearish_factors: list[str] = Field(default_factory=list)


class RiskAssessment(BaseModel):
    """Risk score 0-100 (higher = riskier) with ordered penalty flags."""
    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=100.0)
    flags: list[str] = Field(default_factory=list)


class PersonaProfile(BaseModel):
    """Static scoring and sizing profile for one council persona."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: str
    voice: str = ""
    holder_weight: float = Field(ge=0.0)
    technical_weight: float = Field(ge=0.0)
    liquidity_weight: float = Field(ge=0.0)
    momentum_weight: float = Field(ge=0.0)
    bullish_threshold: float
    bearish_threshold: float
    trade_fraction: float = Field(default=0.1, gt=0.0, le=1.0)
    max_trade_size: float = Field(default=2.0, gt=0.0)

    @model_validator(mode="after")
    def _check_weights(self) -> "PersonaProfile":
        total = (
            self.holder_weight + self.technical_weight
            + self.liquidity_weight + self.momentum_weight
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"weights for {self.id} sum to {total:.4f}, expected 1.0")
        if self.bearish_threshold > self.bullish_threshold:
            raise ValueError(f"bearish threshold above bullish threshold for {self.id}")
        return self


class SubScores(BaseModel):
    """Per-token sub-scores shared by every persona, each normalized to [0,100]."""
    model_config = ConfigDict(frozen=True)

    holder: float = Field(ge=0.0, le=100.0)
    technical: float = Field(ge=0.0, le=100.0)
    liquidity: float = Field(ge=0.0, le=100.0)
    momentum: float = Field(ge=0.0, le=100.0)
    holder_tier: str = ""
    technical_available: bool = True
    risk_score: float = 50.0


class PersonaScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    persona_id: str
    weighted: float
    opinion: Opinion


class TranscriptKind(str, Enum):
    OPENING = "opening"
    CHALLENGE = "challenge"
    DEFENSE = "defense"
    REVISION = "revision"
    VOTE = "vote"


class TranscriptEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    persona_id: str
    text: str
    kind: TranscriptKind
    opinion: Optional[Opinion] = None
    round: int = 0
    fallback: bool = False


class RevisionDecision(BaseModel):
    """Reply to an opinion-revision check."""
    changed: bool = False
    new_opinion: Optional[Opinion] = None
    text: str = ""


class VerdictDecision(str, Enum):
    BUY = "buy"
    PASS = "pass"


class Verdict(BaseModel):
    """Immutable outcome of a completed vote."""
    model_config = ConfigDict(frozen=True)

    decision: VerdictDecision
    opinions: dict[str, Opinion]
    bullish: int
    bearish: int
    neutral: int
    quorum: int
    confidence: float = 0.0

    def bullish_personas(self) -> list[str]:
        return [p for p, o in self.opinions.items() if o == Opinion.BULLISH]


class PolicyDecision(BaseModel):
    allowed: bool
    reason: Optional[str] = None


class ExecutionReceipt(BaseModel):
    """What the trade executor returns for a confirmed buy."""
    amount_out: float
    tx_id: str


class TradeIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    persona_id: str
    token_address: str
    amount_in: float
    confidence: float


class TradeStatus(str, Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TradeResult(BaseModel):
    """Outcome for one bullish persona in one session."""
    model_config = ConfigDict(frozen=True)

    persona_id: str
    token_address: str
    status: TradeStatus
    amount_in: float = 0.0
    amount_out: float = 0.0
    tx_id: Optional[str] = None
    reason: str = ""


class SessionStatus(str, Enum):
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


class SessionReport(BaseModel):
    """Summary of one finished session, handed back to the scheduler."""
    session_id: str
    token: Token
    status: SessionStatus = SessionStatus.COMPLETED
    risk: Optional[RiskAssessment] = None
    indicators: Optional[TechnicalIndicators] = None
    scores: Optional[SubScores] = None
    verdict: Optional[Verdict] = None
    trades: list[TradeResult] = Field(default_factory=list)
    transcript: list[TranscriptEntry] = Field(default_factory=list)
    rounds: int = 0
    total_latency_ms: float = 0.0


class PositionRecord(BaseModel):
    """Persisted paper position row."""
    id: Optional[int] = None
    persona_id: str
    token_address: str
    symbol: str = ""
    amount_in: float
    amount_out: float
    entry_price: float
    tx_id: str
    is_paper: bool = True
    session_id: str = ""
    opened_at: datetime = Field(default_factory=utcnow)
    closed_at: Optional[datetime] = None
