"""State of a single token debate."""
import uuid
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from shared.schemas import (
    Opinion,
    PersonaProfile,
    RiskAssessment,
    SubScores,
    TechnicalIndicators,
    Token,
    TranscriptEntry,
    TradeResult,
    Verdict,
)


class SessionPhase(str, Enum):
    SCORING = "scoring"
    OPENING = "opening"
    EXCHANGE = "exchange"
    VOTING = "voting"
    CLOSED = "closed"


PHASE_ORDER = [
    SessionPhase.SCORING,
    SessionPhase.OPENING,
    SessionPhase.EXCHANGE,
    SessionPhase.VOTING,
    SessionPhase.CLOSED,
]

# Opinions may only change while scoring or debating
MUTABLE_PHASES = {SessionPhase.SCORING, SessionPhase.EXCHANGE}


class PhaseError(Exception):
    """Illegal phase transition or mutation for the current phase."""


class DebateSession:
    """One token's trip from scoring to verdict.

    Every persona holds exactly one opinion (neutral until scored). Phases
    only move forward, the round counter never passes ``max_rounds``, and
    once voting starts the opinion map is frozen.
    """

    def __init__(
        self,
        token: Token,
        personas: Iterable[PersonaProfile],
        max_rounds: int = 3,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex[:12]
        self.token = token
        self.personas: dict[str, PersonaProfile] = {p.id: p for p in personas}
        if not self.personas:
            raise ValueError("a session needs at least one persona")
        self.max_rounds = max_rounds
        self.phase = SessionPhase.SCORING
        self.round = 0
        self.indicators: Optional[TechnicalIndicators] = None
        self.risk: Optional[RiskAssessment] = None
        self.scores: Optional[SubScores] = None
        self.weighted: dict[str, float] = {}
        self.transcript: list[TranscriptEntry] = []
        self.votes: Optional[Mapping[str, Opinion]] = None
        self.verdict: Optional[Verdict] = None
        self.trades: list[TradeResult] = []
        self._opinions: dict[str, Opinion] = {pid: Opinion.NEUTRAL for pid in self.personas}

    @property
    def opinions(self) -> Mapping[str, Opinion]:
        """Read-only view of the current opinions."""
        return MappingProxyType(self._opinions)

    def opinion_of(self, persona_id: str) -> Opinion:
        return self._opinions[persona_id]

    def advance(self, phase: SessionPhase) -> None:
        current = PHASE_ORDER.index(self.phase)
        if PHASE_ORDER.index(phase) != current + 1:
            raise PhaseError(f"cannot move from {self.phase.value} to {phase.value}")
        if phase == SessionPhase.VOTING:
            self.votes = MappingProxyType(dict(self._opinions))
        self.phase = phase

    def set_opinion(self, persona_id: str, opinion: Opinion) -> bool:
        """Set a persona's opinion. Returns True when it changed."""
        if self.phase not in MUTABLE_PHASES:
            raise PhaseError(f"opinions are frozen during {self.phase.value}")
        if persona_id not in self._opinions:
            raise PhaseError(f"unknown persona {persona_id}")
        changed = self._opinions[persona_id] != opinion
        self._opinions[persona_id] = opinion
        return changed

    def next_round(self) -> int:
        if self.phase != SessionPhase.EXCHANGE:
            raise PhaseError(f"rounds only run during exchange, not {self.phase.value}")
        if self.round >= self.max_rounds:
            raise PhaseError(f"round limit {self.max_rounds} reached")
        self.round += 1
        return self.round

    def record(self, entry: TranscriptEntry) -> None:
        if self.phase == SessionPhase.CLOSED:
            raise PhaseError("session is closed")
        self.transcript.append(entry)

    def camps(self) -> tuple[list[str], list[str], list[str]]:
        """(bulls, bears, neutrals) in persona order."""
        bulls, bears, neutrals = [], [], []
        for pid, opinion in self._opinions.items():
            if opinion == Opinion.BULLISH:
                bulls.append(pid)
            elif opinion == Opinion.BEARISH:
                bears.append(pid)
            else:
                neutrals.append(pid)
        return bulls, bears, neutrals

    @property
    def unanimous(self) -> bool:
        values = set(self._opinions.values())
        return values == {Opinion.BULLISH} or values == {Opinion.BEARISH}

    def close(self, verdict: Optional[Verdict] = None) -> None:
        if verdict is not None:
            self.verdict = verdict
        self.advance(SessionPhase.CLOSED)
