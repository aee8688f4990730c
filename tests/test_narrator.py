"""Tests for council.narrator."""
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from council.narrator import (
    NarrativeUnavailable,
    Narrator,
    fallback_line,
    format_transcript,
    token_context,
)
from council.personas import CHAD, STERLING
from helpers import make_token, mcr
from shared.schemas import (
    ChartPattern,
    Direction,
    Opinion,
    RiskAssessment,
    SubScores,
    TechnicalIndicators,
    TranscriptEntry,
    TranscriptKind,
    Trend,
)


def _narrator(return_value=None, side_effect=None):
    client = MagicMock()
    client.chat_async = AsyncMock(return_value=return_value, side_effect=side_effect)
    return Narrator(client, "test-model", names={"chad": "Chad", "sterling": "Sterling"})


@pytest.mark.asyncio
async def test_speak_returns_first_line():
    narrator = _narrator(mcr(response="ser this is sending\nsecond line ignored"))
    line = await narrator.speak(CHAD, Opinion.BULLISH, TranscriptKind.OPENING, "ctx", [],
                                focus="momentum", focus_score=72.0)
    assert line == "ser this is sending"
    messages = narrator.client.chat_async.call_args.kwargs["messages"]
    assert "Chad" in messages[0]["content"]
    assert "momentum" in messages[1]["content"]


@pytest.mark.asyncio
async def test_speak_uses_thinking_when_response_empty():
    narrator = _narrator(mcr(response="", thinking="liquidity is too thin"))
    line = await narrator.speak(STERLING, Opinion.BEARISH, TranscriptKind.VOTE, "ctx", [])
    assert "liquidity is too thin" in line


@pytest.mark.asyncio
async def test_empty_reply_is_unavailable():
    narrator = _narrator(mcr(response="", thinking=""))
    with pytest.raises(NarrativeUnavailable):
        await narrator.speak(CHAD, Opinion.BULLISH, TranscriptKind.OPENING, "ctx", [])


@pytest.mark.asyncio
async def test_transport_error_is_unavailable():
    narrator = _narrator(side_effect=httpx.ConnectError("connection refused"))
    with pytest.raises(NarrativeUnavailable):
        await narrator.speak(CHAD, Opinion.BULLISH, TranscriptKind.CHALLENGE, "ctx", [], target="Sterling")


@pytest.mark.asyncio
async def test_revise_change():
    narrator = _narrator(mcr(response="DECISION: CHANGE\nOPINION: BEARISH\nMESSAGE: fine, you win"))
    decision = await narrator.revise(CHAD, Opinion.BULLISH, "ctx", [])
    assert decision.changed is True
    assert decision.new_opinion == Opinion.BEARISH
    assert decision.text == "fine, you win"


@pytest.mark.asyncio
async def test_revise_keep():
    narrator = _narrator(mcr(response="DECISION: KEEP\nOPINION: BULLISH\nMESSAGE: still sending it"))
    decision = await narrator.revise(CHAD, Opinion.BULLISH, "ctx", [])
    assert decision.changed is False
    assert decision.new_opinion is None


def test_change_to_same_opinion_is_not_a_change():
    decision = Narrator._parse_revision("DECISION: CHANGE\nOPINION: NEUTRAL", Opinion.NEUTRAL)
    assert decision.changed is False


def test_unparseable_revision_raises():
    with pytest.raises(NarrativeUnavailable):
        Narrator._parse_revision("I don't know what to say", Opinion.NEUTRAL)


def test_fallback_lines_are_deterministic():
    assert fallback_line(CHAD, Opinion.BULLISH) == "let's go, aping this"
    challenge = fallback_line(STERLING, Opinion.BEARISH, TranscriptKind.CHALLENGE, target="Chad")
    assert challenge.startswith("@Chad")
    assert fallback_line(CHAD, Opinion.BEARISH, TranscriptKind.VOTE).startswith("BEARISH:")


def test_format_transcript_window():
    entries = [
        TranscriptEntry(persona_id="chad", text=f"line {i}", kind=TranscriptKind.OPENING,
                        opinion=Opinion.BULLISH)
        for i in range(10)
    ]
    text = format_transcript(entries, {"chad": "Chad"}, window=3)
    assert text.splitlines() == ["Chad: line 7", "Chad: line 8", "Chad: line 9"]
    assert format_transcript([], {}) == "(nobody has spoken yet)"


def test_token_context_without_indicators():
    scores = SubScores(holder=95, technical=50, liquidity=90, momentum=50)
    text = token_context(make_token(), RiskAssessment(score=35), None, scores)
    assert "TEST" in text
    assert "not enough chart history" in text
    assert "Bullish factors: none" in text


def test_token_context_with_indicators():
    hammer = ChartPattern(name="Hammer", kind="candlestick", direction=Direction.BULLISH, confidence=70)
    ta = TechnicalIndicators(
        candle_count=30, price=1.0, rsi=72.0, rsi_zone="overbought",
        sma_short=1.1, sma_long=1.0, ma_crossover="golden_cross", trend=Trend.UP,
        patterns=[hammer], pattern_signal=Direction.BULLISH,
        bullish_factors=["golden cross", "buy pressure 70%"],
        bearish_factors=["RSI overbought"],
    )
    scores = SubScores(holder=95, technical=77, liquidity=90, momentum=60)
    text = token_context(make_token(), RiskAssessment(score=35), ta, scores)
    assert "RSI 72 (overbought)" in text
    assert "MA cross golden_cross" in text
    assert "Hammer (net bullish)" in text
    assert "Bullish factors: golden cross; buy pressure 70%" in text
    assert "Bearish factors: RSI overbought" in text
