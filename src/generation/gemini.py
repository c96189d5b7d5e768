"""
Gemini-backed collaborators for the practice loop.

- GeminiPromptComposer: learner options -> image generation prompt
- GeminiDescriptionGenerator: image -> reference description
- GeminiDetailExtractor: image -> 5-15 key details
- GeminiEvaluator: learner utterance -> raw JSON verdict text

All clients are created lazily so constructing a collaborator never needs
network access or a key.
"""
from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from config import get_settings
from src.generation.parsing import parse_detail_list
from src.generation.prompts import (
    build_composer_prompt,
    build_description_prompt,
    build_detail_prompt,
    build_evaluation_prompt,
    build_fallback_image_prompt,
    resolve_treatment_plan,
)
from src.practice.collaborators import (
    DescriptionGenerator,
    DetailExtractor,
    Evaluator,
    PromptComposer,
)
from src.practice.models import Difficulty, Session

IMAGE_MIME_TYPE = "image/png"


class GeminiClientMixin:
    """Lazy Gemini client plus a text-returning generate helper."""

    system_instruction: Optional[str] = None
    generation_config: dict[str, Any] = {
        "temperature": 0.4,
        "top_p": 0.9,
        "max_output_tokens": 2048,
    }

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None):
        settings = get_settings()
        self.api_key = api_key or settings.gemini_api_key
        self.model_name = model_name or self.default_model(settings)
        self._client = None

    def default_model(self, settings) -> str:
        return settings.prompt_model

    @property
    def client(self):
        """Lazy-load Gemini client."""
        if self._client is None:
            import google.generativeai as genai
            genai.configure(api_key=self.api_key)
            self._client = genai.GenerativeModel(
                model_name=self.model_name,
                system_instruction=self.system_instruction,
            )
        return self._client

    async def _generate(self, contents: Any) -> str:
        response = await self.client.generate_content_async(
            contents,
            generation_config=self.generation_config,
        )
        text = (response.text or "").strip()
        if not text:
            raise ValueError(f"Empty response from {self.model_name}")
        return text


def _image_part(image: bytes) -> dict[str, Any]:
    return {"mime_type": IMAGE_MIME_TYPE, "data": image}


# =============================================================================
# Prompt Composer
# =============================================================================


class GeminiPromptComposer(GeminiClientMixin, PromptComposer):
    """Composes image prompts; falls back to a local template on any failure."""

    system_instruction = (
        "You write prompts for an image generator that makes calm, clear "
        "teaching pictures for autistic learners. Reply with the prompt only."
    )
    generation_config = {
        "temperature": 0.7,
        "top_p": 0.9,
        "max_output_tokens": 1024,
    }

    async def compose(
        self,
        difficulty: Difficulty,
        age: str,
        autism_level: str,
        topic_focus: str,
        treatment_plan: str,
        image_style: str,
    ) -> str:
        plan = resolve_treatment_plan(treatment_plan, autism_level)
        query = build_composer_prompt(
            difficulty=difficulty.value,
            age=age,
            autism_level=autism_level,
            topic_focus=topic_focus,
            treatment_plan=plan,
            image_style=image_style,
        )
        try:
            prompt = await self._generate(query)
            logger.debug(f"Composed image prompt ({len(prompt)} chars)")
            return prompt
        except Exception as e:
            logger.warning(f"Prompt composition failed, using local template: {e}")
            return build_fallback_image_prompt(
                difficulty=difficulty.value,
                age=age,
                topic_focus=topic_focus,
                treatment_plan=plan,
                image_style=image_style,
            )


# =============================================================================
# Description & Details
# =============================================================================


class GeminiDescriptionGenerator(GeminiClientMixin, DescriptionGenerator):
    """Writes the reference description the evaluator compares against."""

    def default_model(self, settings) -> str:
        return settings.description_model

    async def describe(
        self,
        image: bytes,
        prompt: str,
        difficulty: Difficulty,
        topic_focus: str,
    ) -> str:
        if not image:
            raise ValueError("Cannot describe a missing image")
        query = build_description_prompt(prompt, difficulty.value, topic_focus)
        return await self._generate([query, _image_part(image)])


class GeminiDetailExtractor(GeminiClientMixin, DetailExtractor):
    """Extracts the checklist of key details from an image."""

    generation_config = {
        "temperature": 0.2,
        "top_p": 0.8,
        "max_output_tokens": 1024,
    }

    def default_model(self, settings) -> str:
        return settings.detail_model

    async def extract(self, image: bytes, prompt: str, topic_focus: str) -> list[str]:
        if not image:
            raise ValueError("Cannot extract details from a missing image")
        text = await self._generate([build_detail_prompt(prompt, topic_focus), _image_part(image)])
        parsed = parse_detail_list(text)
        logger.info(f"Extracted {len(parsed.details)} key details ({parsed.mode.value})")
        return parsed.details


# =============================================================================
# Evaluator
# =============================================================================


class GeminiEvaluator(GeminiClientMixin, Evaluator):
    """Judges a learner's description; returns the raw model text."""

    system_instruction = (
        "You evaluate picture descriptions from young autistic learners. "
        "Be warm, concrete and brief. Always answer with a single JSON object."
    )
    generation_config = {
        "temperature": 0.1,
        "top_p": 0.8,
        "max_output_tokens": 1024,
    }

    def default_model(self, settings) -> str:
        return settings.evaluator_model

    async def evaluate(self, utterance: str, session: Session) -> str:
        query = build_evaluation_prompt(
            utterance,
            age=session.age,
            autism_level=session.autism_level,
            treatment_plan=resolve_treatment_plan(session.treatment_plan, session.autism_level),
            difficulty=session.difficulty.value,
            levels=[level.value for level in Difficulty],
            description=session.description,
            key_details=list(session.key_details),
            identified=list(session.identified_details),
        )
        contents: list[Any] = [query]
        if session.image:
            contents.append(_image_part(session.image))
        return await self._generate(contents)
