"""
Configuration settings for the VisoLearn practice tool.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # AI Integration (Gemini)
    # ========================================
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
        description="Google Generative AI (Gemini) API key",
    )
    prompt_model: str = Field(
        default="gemini-2.0-flash",
        description="Model that composes image prompts",
    )
    description_model: str = Field(
        default="gemini-2.0-flash",
        description="Model that writes the reference image description",
    )
    detail_model: str = Field(
        default="gemini-2.0-flash",
        description="Model that extracts key details",
    )
    evaluator_model: str = Field(
        default="gemini-2.0-flash",
        description="Model that judges learner descriptions",
    )

    # ========================================
    # Image Generation (Hugging Face Inference)
    # ========================================
    hf_token: str | None = Field(
        default=None,
        description="Hugging Face API token",
    )
    image_model_url: str = Field(
        default="https://api-inference.huggingface.co/models/stabilityai/stable-diffusion-3.5-large-turbo",
        description="Inference endpoint for image synthesis",
    )
    image_guidance_scale: float = Field(
        default=8.0,
        description="Classifier-free guidance scale",
    )
    image_negative_prompt: str = Field(
        default=(
            "blurry, distorted, low quality, pixelated, poorly drawn, deformed, "
            "unfinished, sketchy, cartoon, blur"
        ),
        description="Negative prompt sent with every image request",
    )
    image_inference_steps: int = Field(
        default=50,
        description="Number of diffusion steps",
    )
    image_timeout_seconds: float = Field(
        default=120.0,
        description="HTTP timeout for one image request",
    )

    # ========================================
    # Session Defaults
    # ========================================
    default_age: str = Field(default="3", description="Learner age")
    default_autism_level: str = Field(default="Level 1", description="Autism level tag")
    default_attempt_limit: int = Field(default=3, ge=1, description="Attempts before a new image")
    default_details_threshold: float = Field(
        default=0.7,
        description="Fraction (or percentage) of key details needed to advance",
    )
    default_image_style: str = Field(default="Realistic", description="Image style tag")

    # ========================================
    # Export
    # ========================================
    export_dir: str = Field(
        default=".",
        description="Directory for saved images and session logs",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default="logs/visolearn.log",
        description="Log file path (None for stderr only)",
    )

    def has_ai_configured(self) -> bool:
        """Check if Gemini is configured."""
        return bool(self.gemini_api_key)

    def has_image_configured(self) -> bool:
        """Check if the image endpoint token is configured."""
        return bool(self.hf_token)

    def get_image_config(self) -> dict[str, Any]:
        """Get image synthesis configuration as a dictionary."""
        return {
            "url": self.image_model_url,
            "token": self.hf_token,
            "guidance_scale": self.image_guidance_scale,
            "negative_prompt": self.image_negative_prompt,
            "num_inference_steps": self.image_inference_steps,
            "timeout": self.image_timeout_seconds,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
