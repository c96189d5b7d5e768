"""Model-backed collaborators and tolerant output parsing.

Pipeline per session:
1. Gemini composes an image prompt (local template on failure)
2. Hugging Face Inference renders the image
3. Gemini describes the image and lists its key details
4. Gemini judges each learner description

Usage:
    from src.generation import GeminiEvaluator, parse_verdict

    raw = await GeminiEvaluator().evaluate("I see a red ball", session)
    verdict = parse_verdict(raw, session.difficulty).verdict
"""
from src.generation.gemini import (
    GeminiDescriptionGenerator,
    GeminiDetailExtractor,
    GeminiEvaluator,
    GeminiPromptComposer,
)
from src.generation.image_synthesizer import HuggingFaceImageSynthesizer, ImageSynthesisError
from src.generation.parsing import parse_detail_list, parse_verdict

__all__ = [
    "GeminiPromptComposer",
    "GeminiDescriptionGenerator",
    "GeminiDetailExtractor",
    "GeminiEvaluator",
    "HuggingFaceImageSynthesizer",
    "ImageSynthesisError",
    "parse_detail_list",
    "parse_verdict",
]
