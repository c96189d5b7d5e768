"""
Unit tests for the Hugging Face image synthesizer.
"""

import httpx
import pytest
import pytest_asyncio
from httpx import Request, Response

from conftest import PNG_BYTES
from src.generation.image_synthesizer import HuggingFaceImageSynthesizer, ImageSynthesisError

API_URL = "https://api-inference.example.test/models/sd"


@pytest_asyncio.fixture
async def synthesizer():
    """Synthesizer instance with explicit settings."""
    synthesizer = HuggingFaceImageSynthesizer(
        api_url=API_URL,
        token="hf-test-token",
        guidance_scale=8.0,
        negative_prompt="blurry",
        num_inference_steps=50,
        timeout_seconds=5,
    )
    yield synthesizer
    await synthesizer.close()


class TestHuggingFaceImageSynthesizer:
    """Tests for HuggingFaceImageSynthesizer."""

    def test_payload(self, synthesizer):
        payload = synthesizer.build_payload("a red ball")

        assert payload == {
            "inputs": "a red ball",
            "parameters": {
                "guidance_scale": 8.0,
                "negative_prompt": "blurry",
                "num_inference_steps": 50,
            },
        }

    @pytest.mark.asyncio
    async def test_synthesize_success(self, synthesizer, monkeypatch):
        seen = {}

        async def mock_post(url, **kwargs):
            seen["url"] = url
            seen.update(kwargs)
            request = Request("POST", url)
            return Response(200, content=PNG_BYTES, headers={"content-type": "image/png"}, request=request)

        monkeypatch.setattr(synthesizer.client, "post", mock_post)

        image = await synthesizer.synthesize("a red ball")

        assert image == PNG_BYTES
        assert seen["url"] == API_URL
        assert seen["headers"]["Authorization"] == "Bearer hf-test-token"
        assert seen["json"]["inputs"] == "a red ball"

    @pytest.mark.asyncio
    async def test_http_error_raises(self, synthesizer, monkeypatch):
        async def mock_post(url, **kwargs):
            request = Request("POST", url)
            return Response(503, json={"error": "Model is loading"}, request=request)

        monkeypatch.setattr(synthesizer.client, "post", mock_post)

        with pytest.raises(httpx.HTTPStatusError):
            await synthesizer.synthesize("a red ball")

    @pytest.mark.asyncio
    async def test_empty_body_raises(self, synthesizer, monkeypatch):
        async def mock_post(url, **kwargs):
            request = Request("POST", url)
            return Response(200, content=b"", headers={"content-type": "image/png"}, request=request)

        monkeypatch.setattr(synthesizer.client, "post", mock_post)

        with pytest.raises(ImageSynthesisError):
            await synthesizer.synthesize("a red ball")

    @pytest.mark.asyncio
    async def test_json_body_raises(self, synthesizer, monkeypatch):
        async def mock_post(url, **kwargs):
            request = Request("POST", url)
            return Response(200, json={"error": "bad prompt"}, request=request)

        monkeypatch.setattr(synthesizer.client, "post", mock_post)

        with pytest.raises(ImageSynthesisError):
            await synthesizer.synthesize("a red ball")
