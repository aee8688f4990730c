"""Configuration management for token-council."""
import logging
import os
from typing import Dict, Optional

from pydantic import BaseModel


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


def _wallets(name: str) -> Dict[str, str]:
    """Parse "chad=0xabc,sterling=0xdef" into a persona to wallet map."""
    wallets = {}
    for item in os.getenv(name, "").split(","):
        persona, sep, wallet = item.partition("=")
        if sep and persona.strip() and wallet.strip():
            wallets[persona.strip()] = wallet.strip()
    return wallets


class Config(BaseModel):
    """Application configuration loaded from environment variables."""
    TRADING_MODE: str = "paper"
    OLLAMA_HOST: str = "https://ollama.com"
    OLLAMA_API_KEY: str = ""
    LLM_MODEL_NARRATOR: str = "nemotron-3-nano:30b"
    LLM_TIMEOUT_SECONDS: float = 60.0
    LLM_MAX_CONCURRENCY: int = 2
    NADFUN_API_URL: str = "https://api.nadapp.net"
    NADFUN_API_KEY: str = ""
    PERSONA_WALLETS: Dict[str, str] = {}

    # Market data cache
    MARKET_TTL_SECONDS: float = 60.0
    TOKEN_TTL_SECONDS: float = 300.0
    HOLDINGS_TTL_SECONDS: float = 120.0
    CANDLES_TTL_SECONDS: float = 30.0
    RATE_LIMIT_INTERVAL: float = 0.5
    SWAP_HISTORY_LIMIT: int = 100

    # Passive scanner
    SCAN_INTERVAL_SECONDS: float = 30.0
    MIN_MARKET_CAP: float = 3000.0
    MAX_MARKET_CAP: float = 10_000_000.0
    MIN_LIQUIDITY: float = 300.0
    MIN_HOLDERS: int = 2

    # Debate
    MAX_ROUNDS: int = 3
    REVISION_PROBABILITY: float = 0.3
    DEBATE_SEED: Optional[int] = None
    PACING_SECONDS: float = 0.0

    # Voting and trading
    QUORUM: int = 3
    MIN_TRADE_BALANCE: float = 1.0
    MIN_TRADE_SIZE: float = 0.5
    MAX_OPEN_POSITIONS: int = 5
    COOLDOWN_SECONDS: int = 300
    MAX_DAILY_EXPOSURE: float = 25.0
    PAPER_STARTING_BALANCE: float = 10.0
    NATIVE_USD_PRICE: float = 0.03

    DB_PATH: str = "data/council.db"
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            TRADING_MODE=os.getenv("TRADING_MODE", "paper"),
            OLLAMA_HOST=os.getenv("OLLAMA_HOST", "https://ollama.com"),
            OLLAMA_API_KEY=os.getenv("OLLAMA_API_KEY", ""),
            LLM_MODEL_NARRATOR=os.getenv("LLM_MODEL_NARRATOR", "nemotron-3-nano:30b"),
            LLM_TIMEOUT_SECONDS=float(os.getenv("LLM_TIMEOUT_SECONDS", "60")),
            LLM_MAX_CONCURRENCY=int(os.getenv("LLM_MAX_CONCURRENCY", "2")),
            NADFUN_API_URL=os.getenv("NADFUN_API_URL", "https://api.nadapp.net"),
            NADFUN_API_KEY=os.getenv("NADFUN_API_KEY", ""),
            PERSONA_WALLETS=_wallets("PERSONA_WALLETS"),
            MARKET_TTL_SECONDS=float(os.getenv("MARKET_TTL_SECONDS", "60")),
            TOKEN_TTL_SECONDS=float(os.getenv("TOKEN_TTL_SECONDS", "300")),
            HOLDINGS_TTL_SECONDS=float(os.getenv("HOLDINGS_TTL_SECONDS", "120")),
            CANDLES_TTL_SECONDS=float(os.getenv("CANDLES_TTL_SECONDS", "30")),
            RATE_LIMIT_INTERVAL=float(os.getenv("RATE_LIMIT_INTERVAL", "0.5")),
            SWAP_HISTORY_LIMIT=int(os.getenv("SWAP_HISTORY_LIMIT", "100")),
            SCAN_INTERVAL_SECONDS=float(os.getenv("SCAN_INTERVAL_SECONDS", "30")),
            MIN_MARKET_CAP=float(os.getenv("MIN_MARKET_CAP", "3000")),
            MAX_MARKET_CAP=float(os.getenv("MAX_MARKET_CAP", "10000000")),
            MIN_LIQUIDITY=float(os.getenv("MIN_LIQUIDITY", "300")),
            MIN_HOLDERS=int(os.getenv("MIN_HOLDERS", "2")),
            MAX_ROUNDS=int(os.getenv("MAX_ROUNDS", "3")),
            REVISION_PROBABILITY=float(os.getenv("REVISION_PROBABILITY", "0.3")),
            DEBATE_SEED=_optional_int("DEBATE_SEED"),
            PACING_SECONDS=float(os.getenv("PACING_SECONDS", "0")),
            QUORUM=int(os.getenv("QUORUM", "3")),
            MIN_TRADE_BALANCE=float(os.getenv("MIN_TRADE_BALANCE", "1.0")),
            MIN_TRADE_SIZE=float(os.getenv("MIN_TRADE_SIZE", "0.5")),
            MAX_OPEN_POSITIONS=int(os.getenv("MAX_OPEN_POSITIONS", "5")),
            COOLDOWN_SECONDS=int(os.getenv("COOLDOWN_SECONDS", "300")),
            MAX_DAILY_EXPOSURE=float(os.getenv("MAX_DAILY_EXPOSURE", "25")),
            PAPER_STARTING_BALANCE=float(os.getenv("PAPER_STARTING_BALANCE", "10")),
            NATIVE_USD_PRICE=float(os.getenv("NATIVE_USD_PRICE", "0.03")),
            DB_PATH=os.getenv("DB_PATH", "data/council.db"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def is_live(self) -> bool:
        return self.TRADING_MODE == "live"

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO
