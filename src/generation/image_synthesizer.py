"""
Hugging Face Inference client for image synthesis.

Posts the composed prompt to a text-to-image endpoint and returns the raw
image bytes.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger

from config import get_settings
from src.practice.collaborators import ImageSynthesizer


class ImageSynthesisError(RuntimeError):
    """The endpoint answered but did not return an image."""


class HuggingFaceImageSynthesizer(ImageSynthesizer):
    """HTTP client for a Hugging Face text-to-image model."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        token: Optional[str] = None,
        guidance_scale: Optional[float] = None,
        negative_prompt: Optional[str] = None,
        num_inference_steps: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize the synthesizer.

        Args:
            api_url: Inference endpoint URL
            token: Hugging Face bearer token
            guidance_scale: Classifier-free guidance scale
            negative_prompt: Things the image should avoid
            num_inference_steps: Diffusion steps per image
            timeout_seconds: Request timeout
        """
        config = get_settings().get_image_config()
        self.api_url = api_url or config["url"]
        self.token = token if token is not None else config["token"]
        self.guidance_scale = guidance_scale if guidance_scale is not None else config["guidance_scale"]
        self.negative_prompt = negative_prompt if negative_prompt is not None else config["negative_prompt"]
        self.num_inference_steps = num_inference_steps or config["num_inference_steps"]
        self.timeout_seconds = timeout_seconds or config["timeout"]
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            follow_redirects=True,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def build_payload(self, prompt: str) -> dict[str, Any]:
        return {
            "inputs": prompt,
            "parameters": {
                "guidance_scale": self.guidance_scale,
                "negative_prompt": self.negative_prompt,
                "num_inference_steps": self.num_inference_steps,
            },
        }

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "image/png"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def synthesize(self, prompt: str) -> bytes:
        """
        Generate one image.

        Raises:
            httpx.HTTPStatusError: On a non-2xx response
            ImageSynthesisError: When the body is empty or not an image
        """
        response = await self.client.post(
            self.api_url,
            json=self.build_payload(prompt),
            headers=self._headers(),
        )
        if response.is_error:
            logger.error(f"Image endpoint returned {response.status_code}: {response.text[:200]}")
        response.raise_for_status()

        content_type = response.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            raise ImageSynthesisError(f"Image endpoint returned JSON instead of an image: {response.text[:200]}")
        if not response.content:
            raise ImageSynthesisError("Image endpoint returned an empty body")

        logger.info(f"Generated image ({len(response.content)} bytes)")
        return response.content
