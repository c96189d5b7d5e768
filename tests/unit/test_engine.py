"""
Unit tests for the evaluation & progression engine.
"""

import json

import pytest

from conftest import FakeComposer, FakeDescriber, FakeExtractor, FakeSynthesizer, ScriptedEvaluator
from src.practice.engine import (
    ADVANCE_FAILED_MESSAGE,
    NO_IMAGE_MESSAGE,
    ProgressionEngine,
    TurnOutcome,
)
from src.practice.errors import CollaboratorFailure
from src.practice.lifecycle import SessionLifecycleManager
from src.practice.models import ChatEntry, Difficulty, ParseMode, Session, SessionArchive, Speaker, Verdict
from src.practice.progress import ATTEMPTS_EXHAUSTED_MESSAGE, SAME_LEVEL_MESSAGE


def verdict(*found, difficulty=Difficulty.SIMPLE, advance=False, feedback="Keep looking!"):
    return Verdict(
        feedback=feedback,
        proposed_difficulty=difficulty,
        should_advance=advance,
        newly_identified=tuple(found),
    )


@pytest.fixture
def make_engine(lifecycle):
    def _make(*replies):
        evaluator = ScriptedEvaluator(replies)
        return ProgressionEngine(lifecycle, evaluator), evaluator
    return _make


class TestNoImage:
    """Utterances before any image exists."""

    @pytest.mark.asyncio
    async def test_asks_for_image_and_touches_nothing_else(self, make_engine):
        engine, evaluator = make_engine()
        empty = Session()

        result = await engine.submit_utterance("I see a dog", empty, SessionArchive())

        assert result.outcome is TurnOutcome.NO_IMAGE
        assert result.chat == [
            ChatEntry(Speaker.LEARNER, "I see a dog"),
            ChatEntry(Speaker.TEACHER, NO_IMAGE_MESSAGE),
        ]
        assert result.session.attempt_count == 0
        assert evaluator.calls == []
        assert empty.chat == []


class TestAttemptCounting:
    """attempt_count increments only when nothing new was found."""

    @pytest.mark.asyncio
    async def test_new_detail_does_not_count_an_attempt(self, make_engine, active_session):
        engine, _ = make_engine(verdict("blue sky"))

        result = await engine.submit_utterance("the sky is blue", active_session)

        assert result.outcome is TurnOutcome.CONTINUED
        assert result.session.attempt_count == 0
        assert result.session.identified_details == ["blue sky"]
        assert result.newly_identified == ("blue sky",)

    @pytest.mark.asyncio
    async def test_nothing_new_counts_an_attempt(self, make_engine, active_session):
        engine, _ = make_engine(verdict())

        result = await engine.submit_utterance("I don't know", active_session)

        assert result.session.attempt_count == 1
        assert result.session.identified_details == []

    @pytest.mark.asyncio
    async def test_already_identified_detail_counts_an_attempt(self, make_engine, active_session):
        active_session.mark_identified(["blue sky"])
        engine, _ = make_engine(verdict("Blue Sky"))

        result = await engine.submit_utterance("the sky again", active_session)

        assert result.session.attempt_count == 1
        assert result.newly_identified == ()

    @pytest.mark.asyncio
    async def test_unknown_phrases_are_ignored(self, make_engine, active_session):
        engine, _ = make_engine(verdict("purple dragon"))

        result = await engine.submit_utterance("a dragon!", active_session)

        assert result.session.identified_details == []
        assert result.session.attempt_count == 1


class TestTurnRecording:
    """Transcript and checklist after a normal turn."""

    @pytest.mark.asyncio
    async def test_chat_and_checklist(self, make_engine, active_session):
        engine, _ = make_engine(verdict("yellow sun", feedback="Yes, the sun is yellow!"))

        result = await engine.submit_utterance("a yellow sun", active_session)

        assert result.chat[-2:] == [
            ChatEntry(Speaker.LEARNER, "a yellow sun"),
            ChatEntry(Speaker.TEACHER, "Yes, the sun is yellow!"),
        ]
        identified = [item.detail for item in result.checklist if item.identified]
        assert identified == ["yellow sun"]

    @pytest.mark.asyncio
    async def test_caller_session_is_not_mutated(self, make_engine, active_session):
        engine, _ = make_engine(verdict("yellow sun"))
        before = active_session.to_dict()

        await engine.submit_utterance("a yellow sun", active_session)

        assert active_session.to_dict() == before

    @pytest.mark.asyncio
    async def test_raw_text_goes_through_parser(self, make_engine, active_session):
        raw = json.dumps({"feedback": "Good eye!", "newly_identified": ["green tree"], "updated_difficulty": "Simple"})
        engine, _ = make_engine(raw)

        result = await engine.submit_utterance("a tree", active_session)

        assert result.parse_mode is ParseMode.STRUCTURED
        assert result.session.identified_details == ["green tree"]
        assert result.verdict.feedback == "Good eye!"

    @pytest.mark.asyncio
    async def test_unparseable_text_uses_default_verdict(self, make_engine, active_session):
        engine, _ = make_engine("no idea what happened")

        result = await engine.submit_utterance("a tree", active_session)

        assert result.parse_mode is ParseMode.DEFAULT
        assert result.outcome is TurnOutcome.CONTINUED
        assert result.session.attempt_count == 1

    @pytest.mark.asyncio
    async def test_deeply_nested_reply_uses_default_verdict(self, make_engine, active_session):
        engine, _ = make_engine('{"feedback": ' + "[" * 100000)

        result = await engine.submit_utterance("a tree", active_session)

        assert result.parse_mode is ParseMode.DEFAULT
        assert result.outcome is TurnOutcome.CONTINUED
        assert result.session.attempt_count == 1


class TestEvaluatorFailure:
    """Evaluator exceptions leave every input unchanged."""

    @pytest.mark.asyncio
    async def test_raises_collaborator_failure(self, make_engine, active_session):
        engine, _ = make_engine(RuntimeError("quota exceeded"))
        archive = SessionArchive()
        before = active_session.to_dict()

        with pytest.raises(CollaboratorFailure) as exc_info:
            await engine.submit_utterance("a ball", active_session, archive)

        assert exc_info.value.stage == "evaluation"
        assert active_session.to_dict() == before
        assert len(archive) == 0


class TestAdvancement:
    """Replacement sessions and system messages."""

    @pytest.mark.asyncio
    async def test_exhaustion_keeps_difficulty(self, make_engine, active_session, composer):
        active_session.record_attempt()
        active_session.record_attempt()
        engine, _ = make_engine(verdict(difficulty=Difficulty.DETAILED))

        result = await engine.submit_utterance("hmm", active_session, SessionArchive())

        assert result.outcome is TurnOutcome.ADVANCED
        assert result.session.difficulty is Difficulty.SIMPLE
        assert result.session.chat == [ChatEntry(Speaker.SYSTEM, ATTEMPTS_EXHAUSTED_MESSAGE)]
        assert composer.calls[-1]["difficulty"] is Difficulty.SIMPLE

    @pytest.mark.asyncio
    async def test_outgoing_session_archived_as_completed(self, make_engine, active_session):
        active_session.mark_identified(["blue sky", "yellow sun", "green tree"])
        engine, _ = make_engine(verdict("smiling girl", difficulty=Difficulty.SIMPLE))
        archive = SessionArchive()

        result = await engine.submit_utterance("a smiling girl", active_session, archive)

        assert result.advanced
        assert len(result.archive) == 1
        outgoing = result.archive[0]
        assert outgoing.completed is True
        assert outgoing.session_id == active_session.session_id
        assert outgoing.identified_count == 4
        assert outgoing.chat[-1] == ChatEntry(Speaker.TEACHER, "Keep looking!")
        assert result.session.chat == [ChatEntry(Speaker.SYSTEM, SAME_LEVEL_MESSAGE)]
        assert len(archive) == 0
        assert active_session.completed is False

    @pytest.mark.asyncio
    async def test_replacement_keeps_parameters(self, make_engine, active_session):
        active_session.mark_identified(["blue sky", "yellow sun", "green tree"])
        engine, _ = make_engine(verdict("smiling girl", difficulty=Difficulty.MODERATE))

        result = await engine.submit_utterance("a smiling girl", active_session)
        replacement = result.session

        assert replacement.session_id != active_session.session_id
        assert replacement.difficulty is Difficulty.MODERATE
        assert replacement.age == active_session.age
        assert replacement.topic_focus == active_session.topic_focus
        assert replacement.image_style == active_session.image_style
        assert replacement.attempt_limit == active_session.attempt_limit
        assert replacement.details_threshold == active_session.details_threshold
        assert replacement.attempt_count == 0
        assert replacement.identified_details == []

    @pytest.mark.asyncio
    async def test_should_advance_message(self, make_engine, active_session):
        engine, _ = make_engine(verdict(difficulty=Difficulty.DETAILED, advance=True))

        result = await engine.submit_utterance("I see everything", active_session)

        assert result.session.difficulty is Difficulty.DETAILED
        assert result.system_message == (
            "Congratulations! You've advanced to Detailed difficulty! Here's a new image to describe."
        )

    @pytest.mark.asyncio
    async def test_replacement_failure_keeps_old_session(self, make_engine, active_session, synthesizer):
        active_session.record_attempt()
        active_session.record_attempt()
        engine, _ = make_engine(verdict())
        synthesizer.fail = True
        archive = SessionArchive()

        result = await engine.submit_utterance("hmm", active_session, archive)

        assert result.outcome is TurnOutcome.ADVANCE_FAILED
        assert result.session.session_id == active_session.session_id
        assert result.session.completed is False
        assert result.session.attempt_count == 3
        assert result.chat[-1] == ChatEntry(Speaker.SYSTEM, ADVANCE_FAILED_MESSAGE)
        assert result.archive is archive
        assert len(result.archive) == 0

    @pytest.mark.asyncio
    async def test_deterministic_given_same_responses(self, lifecycle, active_session):
        results = []
        for _ in range(2):
            engine = ProgressionEngine(lifecycle, ScriptedEvaluator([verdict("blue sky")]))
            result = await engine.submit_utterance("blue sky", active_session)
            results.append((result.outcome, result.session.identified_details, result.session.chat))

        assert results[0] == results[1]

    @pytest.mark.asyncio
    async def test_advancing_turn_is_deterministic(self, active_session):
        active_session.mark_identified(["blue sky", "yellow sun", "green tree"])
        results = []
        for _ in range(2):
            lifecycle = SessionLifecycleManager(
                FakeComposer(),
                FakeSynthesizer(),
                FakeDescriber(),
                FakeExtractor(),
                id_factory=lambda: "next0001",
                clock=lambda: 1700000000.0,
            )
            engine = ProgressionEngine(
                lifecycle, ScriptedEvaluator([verdict("smiling girl", difficulty=Difficulty.MODERATE)])
            )
            result = await engine.submit_utterance("a smiling girl", active_session, SessionArchive())
            assert result.advanced
            results.append(
                (
                    result.outcome,
                    result.system_message,
                    result.session.to_dict(),
                    [session.to_dict() for session in result.archive],
                )
            )

        assert results[0] == results[1]
        assert results[0][2]["session_id"] == "next0001"
        assert results[0][2]["created_at"] == 1700000000.0
