"""
Collaborator contracts consumed by the practice core.

The lifecycle manager and progression engine only see these abstract
classes. Gemini and Hugging Face implementations live in src.generation;
tests plug in fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.practice.models import Difficulty, Session, Verdict


class PromptComposer(ABC):
    """Builds the image generation prompt. Must not fail fatally."""

    @abstractmethod
    async def compose(
        self,
        difficulty: Difficulty,
        age: str,
        autism_level: str,
        topic_focus: str,
        treatment_plan: str,
        image_style: str,
    ) -> str:
        ...


class ImageSynthesizer(ABC):
    """Turns a prompt into raw image bytes."""

    @abstractmethod
    async def synthesize(self, prompt: str) -> bytes:
        ...


class DescriptionGenerator(ABC):
    """Writes the reference description of an image."""

    @abstractmethod
    async def describe(
        self,
        image: bytes,
        prompt: str,
        difficulty: Difficulty,
        topic_focus: str,
    ) -> str:
        ...


class DetailExtractor(ABC):
    """Lists the 5-15 key details a learner should find."""

    @abstractmethod
    async def extract(self, image: bytes, prompt: str, topic_focus: str) -> list[str]:
        ...


class Evaluator(ABC):
    """Judges one learner utterance.

    May return a Verdict or raw model text; raw text is parsed tolerantly by
    the engine.
    """

    @abstractmethod
    async def evaluate(self, utterance: str, session: Session) -> Verdict | str:
        ...
