"""
Evaluation & Progression Engine.

One learner turn:

    1. Guard: no image yet -> ask for one, nothing else changes
    2. Evaluate the utterance (raw text goes through the verdict fallback chain)
    3. Merge newly identified details; count an attempt when nothing new was found
    4. Record the exchange in the transcript
    5. Decide whether to advance, and at which difficulty
    6. Mint the replacement session and archive the outgoing one

The engine works on a clone of the active session. The caller's session and
archive are never modified, so a failed turn leaves them exactly as they were.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from loguru import logger

from src.generation.parsing import parse_verdict
from src.practice.checklist import all_identified, project
from src.practice.collaborators import Evaluator
from src.practice.errors import CollaboratorFailure
from src.practice.lifecycle import SessionLifecycleManager
from src.practice.models import (
    ChatEntry,
    ChecklistItem,
    ParseMode,
    Session,
    SessionArchive,
    SessionParams,
    Speaker,
    Verdict,
)
from src.practice.progress import AdvancementDecision, evaluate_advancement, select_system_message

NO_IMAGE_MESSAGE = "Please generate an image first."
ADVANCE_FAILED_MESSAGE = "There was an issue generating a new image. Please try again."


class TurnOutcome(str, Enum):
    """How a turn ended."""

    NO_IMAGE = "no_image"
    CONTINUED = "continued"
    ADVANCED = "advanced"
    ADVANCE_FAILED = "advance_failed"


@dataclass(frozen=True)
class TurnResult:
    """Everything the caller needs to render the state after a turn."""

    outcome: TurnOutcome
    session: Session
    archive: SessionArchive
    checklist: list[ChecklistItem]
    verdict: Optional[Verdict] = None
    parse_mode: Optional[ParseMode] = None
    decision: Optional[AdvancementDecision] = None
    newly_identified: tuple[str, ...] = ()
    system_message: Optional[str] = None

    @property
    def chat(self) -> list[ChatEntry]:
        return self.session.chat

    @property
    def advanced(self) -> bool:
        return self.outcome == TurnOutcome.ADVANCED


class ProgressionEngine:
    """Judges learner utterances and advances sessions."""

    def __init__(self, lifecycle: SessionLifecycleManager, evaluator: Evaluator):
        self.lifecycle = lifecycle
        self.evaluator = evaluator

    async def submit_utterance(
        self,
        utterance: str,
        active: Session,
        archive: Optional[SessionArchive] = None,
        checklist: Optional[Sequence[ChecklistItem]] = None,
    ) -> TurnResult:
        """Process one learner description.

        The checklist argument is accepted for callers that keep one around;
        it is always re-projected from the session.

        Raises:
            CollaboratorFailure: when the evaluator fails (nothing changes)
        """
        archive = archive if archive is not None else SessionArchive()
        session = active.clone()

        if not session.has_image:
            session.add_chat(Speaker.LEARNER, utterance)
            session.add_chat(Speaker.TEACHER, NO_IMAGE_MESSAGE)
            return TurnResult(
                outcome=TurnOutcome.NO_IMAGE,
                session=session,
                archive=archive,
                checklist=project(session.key_details, session.identified_details),
            )

        verdict, parse_mode = await self._evaluate(utterance, session)

        newly = session.mark_identified(verdict.newly_identified)
        if not newly:
            session.record_attempt()

        session.add_chat(Speaker.LEARNER, utterance)
        session.add_chat(Speaker.TEACHER, verdict.feedback)

        current_checklist = project(session.key_details, session.identified_details)
        identified = session.identified_count
        total = len(session.key_details)

        decision = evaluate_advancement(
            identified=identified,
            total=total,
            fraction=session.details_threshold,
            all_identified=all_identified(current_checklist),
            attempt_count=session.attempt_count,
            attempt_limit=session.attempt_limit,
            should_advance=verdict.should_advance,
            current_difficulty=session.difficulty,
            proposed_difficulty=verdict.proposed_difficulty,
        )
        logger.debug(
            f"Session {session.session_id}: {identified}/{total} identified, "
            f"attempts {session.attempt_count}/{session.attempt_limit}, "
            f"threshold={decision.threshold_reached} all={decision.all_identified} "
            f"exhausted={decision.attempts_exhausted} advance={decision.should_advance}"
        )

        if not decision.advance:
            return TurnResult(
                outcome=TurnOutcome.CONTINUED,
                session=session,
                archive=archive,
                checklist=current_checklist,
                verdict=verdict,
                parse_mode=parse_mode,
                decision=decision,
                newly_identified=tuple(newly),
            )

        message = select_system_message(decision, identified, total)
        try:
            replacement = await self.lifecycle.mint_session(
                SessionParams.from_session(session),
                decision.selected_difficulty,
            )
        except CollaboratorFailure as e:
            logger.error(f"Could not replace session {session.session_id}: {e}")
            session.add_chat(Speaker.SYSTEM, ADVANCE_FAILED_MESSAGE)
            return TurnResult(
                outcome=TurnOutcome.ADVANCE_FAILED,
                session=session,
                archive=archive,
                checklist=current_checklist,
                verdict=verdict,
                parse_mode=parse_mode,
                decision=decision,
                newly_identified=tuple(newly),
                system_message=ADVANCE_FAILED_MESSAGE,
            )

        session.completed = True
        replacement.add_chat(Speaker.SYSTEM, message)
        logger.info(
            f"Advanced from {session.session_id} ({session.difficulty.value}) "
            f"to {replacement.session_id} ({replacement.difficulty.value})"
        )
        return TurnResult(
            outcome=TurnOutcome.ADVANCED,
            session=replacement,
            archive=archive.append(session),
            checklist=project(replacement.key_details, replacement.identified_details),
            verdict=verdict,
            parse_mode=parse_mode,
            decision=decision,
            newly_identified=tuple(newly),
            system_message=message,
        )

    async def _evaluate(self, utterance: str, session: Session) -> tuple[Verdict, ParseMode]:
        try:
            raw = await self.evaluator.evaluate(utterance, session.clone())
        except Exception as e:
            logger.error(f"Evaluation failed: {e}")
            raise CollaboratorFailure("evaluation", str(e)) from e

        if isinstance(raw, Verdict):
            return raw, ParseMode.STRUCTURED
        parsed = parse_verdict(raw, session.difficulty)
        return parsed.verdict, parsed.mode
