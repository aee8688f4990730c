"""LLM narrator: turns structured facts into persona-voiced lines.

The narrator never decides opinions, except through the explicit
revision check. Any failure raises NarrativeUnavailable so callers can fall
back to canned lines.
"""
import logging
import re
import time
from typing import Optional, Sequence

import httpx

from council.prompts import (
    CHALLENGE_PROMPT,
    DEFENSE_PROMPT,
    OPENING_PROMPT,
    REVISION_PROMPT,
    SYSTEM_PROMPT,
    TOKEN_CONTEXT,
    VOTE_PROMPT,
)
from shared.llm_client import LLMClient
from shared.schemas import (
    Opinion,
    PersonaProfile,
    RevisionDecision,
    RiskAssessment,
    SubScores,
    TechnicalIndicators,
    Token,
    TranscriptEntry,
    TranscriptKind,
)

logger = logging.getLogger(__name__)

DECISION_PATTERN = re.compile(r"DECISION:\s*(KEEP|CHANGE)", re.IGNORECASE)
OPINION_PATTERN = re.compile(r"OPINION:\s*(BULLISH|BEARISH|NEUTRAL)", re.IGNORECASE)
MESSAGE_PATTERN = re.compile(r"MESSAGE:\s*(.+)", re.IGNORECASE)
THINK_PATTERN = re.compile(r"<think>.*?</think>", re.DOTALL)

FALLBACK_LINES = {
    "chad": {
        Opinion.BULLISH: "let's go, aping this",
        Opinion.BEARISH: "even I'm not touching this one",
        Opinion.NEUTRAL: "setup forming, not ready yet",
    },
    "quantum": {
        Opinion.BULLISH: "data supports entry, probability favors upside",
        Opinion.BEARISH: "statistics indicate elevated rug probability",
        Opinion.NEUTRAL: "insufficient data, need more confirmation",
    },
    "sensei": {
        Opinion.BULLISH: "the vibes are immaculate, nakama energy strong",
        Opinion.BEARISH: "no community soul here, feels like a trap",
        Opinion.NEUTRAL: "mixed signals, watching for now",
    },
    "sterling": {
        Opinion.BULLISH: "reluctantly, the fundamentals check out",
        Opinion.BEARISH: "I wouldn't touch this with a ten-foot pole",
        Opinion.NEUTRAL: "more due diligence required",
    },
    "oracle": {
        Opinion.BULLISH: "the chains whisper... fortune awaits",
        Opinion.BEARISH: "darkness surrounds this one... avoid",
        Opinion.NEUTRAL: "the path is unclear...",
    },
}


class NarrativeUnavailable(Exception):
    """The narrator could not produce a line."""


def fallback_line(profile: PersonaProfile, opinion: Opinion, kind: TranscriptKind = TranscriptKind.OPENING,
                  target: Optional[str] = None) -> str:
    """Deterministic canned line for a persona and stance. No network."""
    line = FALLBACK_LINES.get(profile.id, {}).get(opinion, "no comment")
    if kind == TranscriptKind.CHALLENGE and target:
        return f"@{target}, I'm not convinced. {line}"
    if kind == TranscriptKind.DEFENSE and target:
        return f"@{target}, I hear you, but {line}"
    if kind == TranscriptKind.VOTE:
        return f"{opinion.value.upper()}: {line}"
    return line


def token_context(
    token: Token,
    risk: RiskAssessment,
    ta: Optional[TechnicalIndicators],
    scores: SubScores,
) -> str:
    bullish = bearish = "none"
    if ta is None:
        technicals = "not enough chart history"
    else:
        technicals = (
            f"RSI {ta.rsi:.0f} ({ta.rsi_zone}), trend {ta.trend.value}, "
            f"MA cross {ta.ma_crossover}, buy/sell {ta.buy_sell_ratio:.2f}"
        )
        if ta.patterns:
            technicals += ", patterns: " + ", ".join(p.name for p in ta.patterns)
            technicals += f" (net {ta.pattern_signal.value})"
        bullish = "; ".join(ta.bullish_factors) or "none"
        bearish = "; ".join(ta.bearish_factors) or "none"
    return TOKEN_CONTEXT.format(
        symbol=token.symbol,
        name=token.name or token.symbol,
        price=token.price,
        market_cap=token.market_cap,
        liquidity=token.liquidity,
        liquidity_ratio=token.liquidity_ratio * 100,
        holders=token.holders,
        price_change_24h=token.price_change_24h,
        risk_score=risk.score,
        risk_flags=f"({'; '.join(risk.flags)})" if risk.flags else "",
        technicals=technicals,
        bullish_factors=bullish,
        bearish_factors=bearish,
        holder=scores.holder,
        technical=scores.technical,
        liquidity_score=scores.liquidity,
        momentum=scores.momentum,
    )


def format_transcript(entries: Sequence[TranscriptEntry], names: dict[str, str], window: int = 6) -> str:
    recent = list(entries)[-window:]
    if not recent:
        return "(nobody has spoken yet)"
    return "\n".join(f"{names.get(e.persona_id, e.persona_id)}: {e.text}" for e in recent)


class Narrator:
    """NarrativeGenerator backed by an Ollama chat model."""

    def __init__(self, client: LLMClient, model: str, names: Optional[dict[str, str]] = None,
                 transcript_window: int = 6):
        self.client = client
        self.model = model
        self.names = names or {}
        self.transcript_window = transcript_window

    async def _chat(self, profile: PersonaProfile, opinion: Opinion, prompt: str, max_tokens: int) -> str:
        system = SYSTEM_PROMPT.format(voice=profile.voice, role=profile.role, opinion=opinion.value)
        start = time.monotonic()
        try:
            result = await self.client.chat_async(
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                model=self.model,
                temperature=0.8,
                max_tokens=max_tokens,
            )
        except (httpx.HTTPError, ValueError) as e:
            raise NarrativeUnavailable(f"{type(e).__name__}: {e}") from e
        latency = (time.monotonic() - start) * 1000

        response = (result.get("response") or "").strip()
        text = response or THINK_PATTERN.sub("", result.get("merged", "")).strip()
        if not text:
            raise NarrativeUnavailable("empty reply")
        logger.debug("Narrator reply", extra={
            "persona": profile.id,
            "latency_ms": round(latency, 1),
            "eval_count": result.get("eval_count", 0),
        })
        return text

    async def speak(
        self,
        profile: PersonaProfile,
        opinion: Opinion,
        kind: TranscriptKind,
        context: str,
        transcript: Sequence[TranscriptEntry],
        target: Optional[str] = None,
        focus: str = "",
        focus_score: float = 0.0,
    ) -> str:
        history = format_transcript(transcript, self.names, self.transcript_window)
        if kind == TranscriptKind.OPENING:
            prompt = OPENING_PROMPT.format(context=context, transcript=history,
                                           focus=focus, focus_score=focus_score)
        elif kind == TranscriptKind.CHALLENGE:
            prompt = CHALLENGE_PROMPT.format(context=context, transcript=history, target=target)
        elif kind == TranscriptKind.DEFENSE:
            prompt = DEFENSE_PROMPT.format(context=context, transcript=history, target=target)
        elif kind == TranscriptKind.VOTE:
            prompt = VOTE_PROMPT.format(context=context, transcript=history, opinion=opinion.value)
        else:
            raise ValueError(f"speak() does not handle {kind.value}; use revise()")
        text = await self._chat(profile, opinion, prompt, max_tokens=160)
        return text.splitlines()[0].strip()[:400] or text[:400]

    async def revise(
        self,
        profile: PersonaProfile,
        opinion: Opinion,
        context: str,
        transcript: Sequence[TranscriptEntry],
    ) -> RevisionDecision:
        history = format_transcript(transcript, self.names, self.transcript_window)
        prompt = REVISION_PROMPT.format(context=context, transcript=history, opinion=opinion.value.upper())
        text = await self._chat(profile, opinion, prompt, max_tokens=200)
        return self._parse_revision(text, opinion)

    @staticmethod
    def _parse_revision(text: str, current: Opinion) -> RevisionDecision:
        """Parse a revision reply. Anything unclear keeps the current opinion."""
        decisions = DECISION_PATTERN.findall(text)
        opinions = OPINION_PATTERN.findall(text)
        messages = MESSAGE_PATTERN.findall(text)
        if not decisions and not opinions:
            raise NarrativeUnavailable("unparseable revision reply")

        message = messages[-1].strip()[:400] if messages else THINK_PATTERN.sub("", text).strip()[:200]
        new_opinion = Opinion(opinions[-1].lower()) if opinions else current
        changed = bool(decisions) and decisions[-1].upper() == "CHANGE" and new_opinion != current
        return RevisionDecision(
            changed=changed,
            new_opinion=new_opinion if changed else None,
            text=message,
        )
