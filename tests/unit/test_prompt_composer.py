"""
Unit tests for the Gemini collaborators (model calls are faked).
"""

import pytest

from conftest import PNG_BYTES
from src.generation.gemini import (
    GeminiDescriptionGenerator,
    GeminiDetailExtractor,
    GeminiEvaluator,
    GeminiPromptComposer,
)
from src.generation.parsing import DEFAULT_DETAILS
from src.practice.models import DEFAULT_TREATMENT_PLANS, Difficulty


def fake_generate(reply=None, error=None):
    calls = []

    async def _generate(contents):
        calls.append(contents)
        if error is not None:
            raise error
        return reply

    return _generate, calls


class TestGeminiPromptComposer:
    """Tests for prompt composition."""

    @pytest.mark.asyncio
    async def test_level_one_default_plan_used_when_blank(self, monkeypatch):
        composer = GeminiPromptComposer(api_key="test-key")
        generate, calls = fake_generate(reply="A cartoon park scene")
        monkeypatch.setattr(composer, "_generate", generate)

        prompt = await composer.compose(Difficulty.VERY_SIMPLE, "4", "Level 1", "parks", "", "Cartoon")

        assert prompt == "A cartoon park scene"
        assert DEFAULT_TREATMENT_PLANS["Level 1"] in calls[0]
        assert "Cartoon" in calls[0]

    @pytest.mark.asyncio
    async def test_unknown_level_falls_back_to_level_one_plan(self, monkeypatch):
        composer = GeminiPromptComposer(api_key="test-key")
        generate, calls = fake_generate(reply="prompt")
        monkeypatch.setattr(composer, "_generate", generate)

        await composer.compose(Difficulty.SIMPLE, "4", "Level 7", "parks", "   ", "Realistic")

        assert DEFAULT_TREATMENT_PLANS["Level 1"] in calls[0]

    @pytest.mark.asyncio
    async def test_explicit_plan_is_kept(self, monkeypatch):
        composer = GeminiPromptComposer(api_key="test-key")
        generate, calls = fake_generate(reply="prompt")
        monkeypatch.setattr(composer, "_generate", generate)

        await composer.compose(Difficulty.SIMPLE, "4", "Level 2", "pets", "Name animal colors", "Watercolor")

        assert "Name animal colors" in calls[0]
        assert DEFAULT_TREATMENT_PLANS["Level 2"] not in calls[0]

    @pytest.mark.asyncio
    async def test_failure_returns_local_template(self, monkeypatch):
        composer = GeminiPromptComposer(api_key="test-key")
        generate, _ = fake_generate(error=RuntimeError("quota"))
        monkeypatch.setattr(composer, "_generate", generate)

        prompt = await composer.compose(Difficulty.MODERATE, "6", "Level 1", "farm animals", "", "Illustration")

        assert "farm animals" in prompt
        assert "Moderate" in prompt
        assert DEFAULT_TREATMENT_PLANS["Level 1"] in prompt


class TestGeminiImageCollaborators:
    """Tests for description, detail and evaluation calls."""

    @pytest.mark.asyncio
    async def test_description_sends_image(self, monkeypatch):
        describer = GeminiDescriptionGenerator(api_key="test-key")
        generate, calls = fake_generate(reply="A girl with a red ball.")
        monkeypatch.setattr(describer, "_generate", generate)

        text = await describer.describe(PNG_BYTES, "park prompt", Difficulty.SIMPLE, "parks")

        assert text == "A girl with a red ball."
        query, image_part = calls[0]
        assert "park prompt" in query
        assert image_part == {"mime_type": "image/png", "data": PNG_BYTES}

    @pytest.mark.asyncio
    async def test_description_requires_image(self):
        with pytest.raises(ValueError):
            await GeminiDescriptionGenerator(api_key="test-key").describe(b"", "p", Difficulty.SIMPLE, "t")

    @pytest.mark.asyncio
    async def test_detail_extractor_parses_reply(self, monkeypatch):
        extractor = GeminiDetailExtractor(api_key="test-key")
        generate, _ = fake_generate(reply='```json\n["red ball", "green tree"]\n```')
        monkeypatch.setattr(extractor, "_generate", generate)

        assert await extractor.extract(PNG_BYTES, "prompt", "parks") == ["red ball", "green tree"]

    @pytest.mark.asyncio
    async def test_detail_extractor_default_details(self, monkeypatch):
        extractor = GeminiDetailExtractor(api_key="test-key")
        generate, _ = fake_generate(reply="Sorry, I cannot help with that.")
        monkeypatch.setattr(extractor, "_generate", generate)

        assert await extractor.extract(PNG_BYTES, "prompt", "parks") == DEFAULT_DETAILS

    @pytest.mark.asyncio
    async def test_evaluator_prompt_lists_details(self, monkeypatch, active_session):
        active_session.mark_identified(["blue sky"])
        evaluator = GeminiEvaluator(api_key="test-key")
        generate, calls = fake_generate(reply='{"feedback": "ok"}')
        monkeypatch.setattr(evaluator, "_generate", generate)

        raw = await evaluator.evaluate("a red ball", active_session)

        assert raw == '{"feedback": "ok"}'
        query = calls[0][0]
        assert "- red ball on the grass" in query
        assert "ALREADY IDENTIFIED:\n- blue sky" in query
        assert "a red ball" in query
        assert "Very Simple, Simple, Moderate, Detailed, Very Detailed" in query
