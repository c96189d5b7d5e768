"""
Session Lifecycle Manager.

Mints sessions by running the collaborator chain

    PromptComposer -> ImageSynthesizer -> DescriptionGenerator -> DetailExtractor

and archives the session being replaced. A failure at any stage raises
CollaboratorFailure and leaves the caller's session and archive untouched.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from src.practice.checklist import project
from src.practice.collaborators import (
    DescriptionGenerator,
    DetailExtractor,
    ImageSynthesizer,
    PromptComposer,
)
from src.practice.errors import CollaboratorFailure
from src.practice.models import (
    ChecklistItem,
    Difficulty,
    Session,
    SessionArchive,
    SessionParams,
    new_session_id,
)

T = TypeVar("T")


@dataclass(frozen=True)
class StartResult:
    """A freshly minted session with its checklist and the updated archive."""

    session: Session
    checklist: list[ChecklistItem]
    archive: SessionArchive


async def _stage(stage: str, call: Awaitable[T]) -> T:
    try:
        return await call
    except CollaboratorFailure:
        raise
    except Exception as e:
        logger.error(f"Session setup failed at {stage} stage: {e}")
        raise CollaboratorFailure(stage, str(e)) from e


class SessionLifecycleManager:
    """Creates sessions and hands the outgoing one to the archive.

    id_factory and clock stamp each minted session; pass fixed ones to make
    minting reproducible.
    """

    def __init__(
        self,
        composer: PromptComposer,
        synthesizer: ImageSynthesizer,
        describer: DescriptionGenerator,
        extractor: DetailExtractor,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.composer = composer
        self.synthesizer = synthesizer
        self.describer = describer
        self.extractor = extractor
        self.id_factory = id_factory or new_session_id
        self.clock = clock or time.time

    async def mint_session(self, params: SessionParams, difficulty: Difficulty) -> Session:
        """Run the collaborator chain and build a fresh session.

        Raises:
            CollaboratorFailure: naming the stage that failed
        """
        prompt = await _stage(
            "prompt",
            self.composer.compose(
                difficulty,
                params.age,
                params.autism_level,
                params.topic_focus,
                params.treatment_plan,
                params.image_style,
            ),
        )
        image = await _stage("image", self.synthesizer.synthesize(prompt))
        if not image:
            raise CollaboratorFailure("image", "synthesizer returned no image data")
        description = await _stage(
            "description",
            self.describer.describe(image, prompt, difficulty, params.topic_focus),
        )
        key_details = await _stage(
            "details",
            self.extractor.extract(image, prompt, params.topic_focus),
        )

        session = Session(
            prompt=prompt,
            image=image,
            description=description,
            treatment_plan=params.treatment_plan,
            topic_focus=params.topic_focus,
            key_details=tuple(key_details),
            difficulty=difficulty,
            age=params.age,
            autism_level=params.autism_level,
            attempt_limit=params.attempt_limit,
            details_threshold=params.details_threshold,
            image_style=params.image_style,
            session_id=self.id_factory(),
            created_at=self.clock(),
        )
        logger.info(
            f"Minted session {session.session_id} at {difficulty.value} "
            f"with {len(session.key_details)} key details"
        )
        return session

    async def start_session(
        self,
        params: SessionParams,
        prior_active: Optional[Session] = None,
        archive: Optional[SessionArchive] = None,
    ) -> StartResult:
        """Start a new session, archiving prior_active when it had a prompt.

        The difficulty carries over from prior_active; otherwise sessions
        start at the easiest level.
        """
        archive = archive if archive is not None else SessionArchive()
        difficulty = prior_active.difficulty if prior_active is not None else Difficulty.default()

        session = await self.mint_session(params, difficulty)

        if prior_active is not None and prior_active.has_prompt:
            archive = archive.append(prior_active.clone())
            logger.debug(f"Archived session {prior_active.session_id} ({len(archive)} total)")

        return StartResult(
            session=session,
            checklist=project(session.key_details, session.identified_details),
            archive=archive,
        )
