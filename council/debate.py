"""Debate coordinator: scoring, openings, exchange rounds and voting."""
import logging
import random
from typing import Mapping, Optional

from council.narrator import Narrator, NarrativeUnavailable, fallback_line, token_context
from council.personas import OPENING_ORDER
from council.session import DebateSession, SessionPhase
from shared.events import EventBus, EventKind
from shared.schemas import Opinion, RevisionDecision, TranscriptEntry, TranscriptKind
from strategy.scoring import OpinionEngine

logger = logging.getLogger(__name__)

REVISION_PROBABILITY = 0.3


class DebateCoordinator:
    """Runs a session from Scoring through Voting.

    Opinions come from the OpinionEngine. The narrator only voices them,
    and may change one only through an explicit revision check.
    """

    def __init__(
        self,
        narrator: Narrator,
        events: EventBus,
        engine: Optional[OpinionEngine] = None,
        rng: Optional[random.Random] = None,
        revision_probability: float = REVISION_PROBABILITY,
    ):
        self.narrator = narrator
        self.events = events
        self.engine = engine or OpinionEngine()
        self.rng = rng or random.Random()
        self.revision_probability = revision_probability

    async def run(self, session: DebateSession) -> Mapping[str, Opinion]:
        """Debate the session's token and return the frozen votes."""
        if session.risk is None:
            raise ValueError("session has no risk assessment")
        self.score(session)
        session.advance(SessionPhase.OPENING)
        self._phase_event(session)
        context = token_context(session.token, session.risk, session.indicators, session.scores)
        for pid, opinion in session.opinions.items():
            self.events.emit(
                EventKind.OPINION_STATED, session_id=session.id, token_address=session.token.address,
                persona_id=pid, payload={"opinion": opinion, "score": round(session.weighted[pid], 2)},
            )
        await self.opening(session, context)

        session.advance(SessionPhase.EXCHANGE)
        self._phase_event(session)
        await self.exchange(session, context)

        session.advance(SessionPhase.VOTING)
        self._phase_event(session)
        await self.vote(session, context)
        return session.votes

    def score(self, session: DebateSession) -> None:
        scores = self.engine.score_token(session.token, session.indicators, session.risk)
        session.scores = scores
        for pid, result in self.engine.score_all(session.personas.values(), scores).items():
            session.weighted[pid] = result.weighted
            session.set_opinion(pid, result.opinion)
        logger.info("Personas scored", extra={
            "session_id": session.id,
            "token": session.token.symbol,
            "opinions": {pid: o.value for pid, o in session.opinions.items()},
        })

    async def opening(self, session: DebateSession, context: str) -> None:
        for pid, focus in OPENING_ORDER:
            if pid not in session.personas:
                continue
            await self._say(
                session, pid, TranscriptKind.OPENING, context,
                focus=focus, focus_score=getattr(session.scores, focus),
            )

    async def exchange(self, session: DebateSession, context: str) -> None:
        while session.round < session.max_rounds:
            bulls, bears, neutrals = session.camps()
            if session.unanimous:
                logger.info("Council unanimous, skipping debate", extra={"session_id": session.id})
                return
            has_pair = bool(bulls and bears)
            if not has_pair and not neutrals:
                return

            rnd = session.next_round()
            self.events.emit(
                EventKind.PHASE_CHANGED, session_id=session.id, token_address=session.token.address,
                payload={"phase": session.phase, "round": rnd},
            )

            challenger = defender = None
            if has_pair:
                challenger = self.rng.choice(bears)
                defender = self.rng.choice(bulls)
                await self._say(session, challenger, TranscriptKind.CHALLENGE, context, target=defender)
                await self._say(session, defender, TranscriptKind.DEFENSE, context, target=challenger)

            for pid in neutrals:
                await self._revise(session, pid, context)

            if has_pair and self.rng.random() < self.revision_probability:
                # the side facing the bigger opposing camp is more likely to waver
                pid = self.rng.choices([defender, challenger], weights=[len(bears), len(bulls)])[0]
                await self._revise(session, pid, context)

    async def vote(self, session: DebateSession, context: str) -> None:
        for pid, opinion in session.votes.items():
            await self._say(session, pid, TranscriptKind.VOTE, context)
            self.events.emit(
                EventKind.VOTE_CAST, session_id=session.id, token_address=session.token.address,
                persona_id=pid, payload={"opinion": opinion},
            )

    async def _say(
        self,
        session: DebateSession,
        pid: str,
        kind: TranscriptKind,
        context: str,
        target: Optional[str] = None,
        focus: str = "",
        focus_score: float = 0.0,
    ) -> TranscriptEntry:
        profile = session.personas[pid]
        opinion = session.opinion_of(pid)
        target_name = session.personas[target].name if target else None
        fallback = False
        try:
            text = await self.narrator.speak(
                profile, opinion, kind, context, session.transcript,
                target=target_name, focus=focus, focus_score=focus_score,
            )
        except NarrativeUnavailable as e:
            logger.warning(f"Narrator unavailable, using fallback: {e}", extra={
                "session_id": session.id, "persona": pid, "kind": kind,
            })
            text = fallback_line(profile, opinion, kind, target_name)
            fallback = True
        except Exception as e:
            logger.error(f"Narrator failed, using fallback: {e}", exc_info=True, extra={
                "session_id": session.id, "persona": pid, "kind": kind,
            })
            text = fallback_line(profile, opinion, kind, target_name)
            fallback = True
        return self._record(session, pid, kind, text, opinion, fallback)

    async def _revise(self, session: DebateSession, pid: str, context: str) -> TranscriptEntry:
        profile = session.personas[pid]
        current = session.opinion_of(pid)
        fallback = False
        try:
            decision = await self.narrator.revise(profile, current, context, session.transcript)
        except NarrativeUnavailable as e:
            logger.warning(f"Revision check unavailable, keeping opinion: {e}", extra={
                "session_id": session.id, "persona": pid,
            })
            decision = RevisionDecision(changed=False, text=fallback_line(profile, current))
            fallback = True
        except Exception as e:
            logger.error(f"Revision check failed, keeping opinion: {e}", exc_info=True, extra={
                "session_id": session.id, "persona": pid,
            })
            decision = RevisionDecision(changed=False, text=fallback_line(profile, current))
            fallback = True

        if decision.changed and decision.new_opinion is not None and decision.new_opinion != current:
            session.set_opinion(pid, decision.new_opinion)
            logger.info("Opinion revised", extra={
                "session_id": session.id, "persona": pid,
                "from": current, "to": decision.new_opinion, "round": session.round,
            })
            self.events.emit(
                EventKind.OPINION_CHANGED, session_id=session.id, token_address=session.token.address,
                persona_id=pid, payload={"from": current, "to": decision.new_opinion, "round": session.round},
            )
        return self._record(session, pid, TranscriptKind.REVISION, decision.text,
                            session.opinion_of(pid), fallback)

    def _record(self, session, pid, kind, text, opinion, fallback) -> TranscriptEntry:
        entry = TranscriptEntry(
            persona_id=pid, text=text, kind=kind, opinion=opinion,
            round=session.round, fallback=fallback,
        )
        session.record(entry)
        self.events.emit(
            EventKind.MESSAGE, session_id=session.id, token_address=session.token.address,
            persona_id=pid, payload={"kind": kind, "text": text, "round": session.round, "fallback": fallback},
        )
        return entry

    def _phase_event(self, session: DebateSession) -> None:
        self.events.emit(
            EventKind.PHASE_CHANGED, session_id=session.id, token_address=session.token.address,
            payload={"phase": session.phase, "round": session.round},
        )
