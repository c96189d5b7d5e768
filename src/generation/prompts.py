"""
LLM prompts for the picture-description practice loop.

Contains prompts for the four Gemini collaborators:
- Prompt composition (turns learner options into an image prompt)
- Reference description of a generated image
- Key-detail extraction (JSON array)
- Evaluation of a learner's description (JSON verdict)

Plus the style instructions and the local fallback prompt used when the
composer model is unavailable.
"""
from __future__ import annotations

from src.practice.models import DEFAULT_TREATMENT_PLANS, default_treatment_plan

__all__ = [
    "DEFAULT_TREATMENT_PLANS",
    "STYLE_INSTRUCTIONS",
    "build_composer_prompt",
    "build_description_prompt",
    "build_detail_prompt",
    "build_evaluation_prompt",
    "build_fallback_image_prompt",
    "default_treatment_plan",
    "resolve_treatment_plan",
    "style_instruction",
]

# =============================================================================
# Style Instructions
# =============================================================================

STYLE_INSTRUCTIONS = {
    "Realistic": (
        "Create a realistic image with natural lighting and detailed textures, capturing the "
        "essence of real-world environments. Ensure the scene has a lifelike feel, with accurate "
        "light and shadow play, and textures that convey a true-to-life appearance."
    ),
    "Illustration": (
        "Create a clean and colorful illustration in the style of children's books, featuring "
        "bold outlines, vibrant colors, and a playful, engaging composition. Ensure the artwork "
        "has a soft, friendly feel with well-defined shapes and a sense of warmth and charm."
    ),
    "Cartoon": (
        "Create a friendly cartoon-style illustration with simplified shapes, bold outlines, and "
        "expressive characters. Ensure the characters have exaggerated facial expressions and "
        "dynamic poses to convey emotion and personality in a warm and inviting way."
    ),
    "Watercolor": (
        "Create a soft watercolor illustration with gentle color transitions, delicate "
        "brushstrokes, and a dreamy, ethereal quality. Ensure the colors blend seamlessly, "
        "evoking a sense of warmth and tranquility."
    ),
    "3D Rendering": (
        "Create a highly detailed 3D-rendered image with realistic depth, rich textures, and "
        "natural lighting effects. Ensure accurate reflections, shadows, and materials to enhance "
        "the sense of realism and immersion."
    ),
}


def style_instruction(image_style: str) -> str:
    return STYLE_INSTRUCTIONS.get(image_style, "")


def resolve_treatment_plan(treatment_plan: str | None, autism_level: str) -> str:
    """Blank plans are replaced by the level-keyed default."""
    if treatment_plan and treatment_plan.strip():
        return treatment_plan
    return default_treatment_plan(autism_level)


# =============================================================================
# Prompt Composition
# =============================================================================

COMPOSER_PROMPT = """Your task is to create an EXCEPTIONAL image generation prompt that will produce an educational image.

PARAMETERS:
- Difficulty: {difficulty}
- Person's Age: {age}
- Autism Level: {autism_level}
- Topic Focus: {topic_focus}
- Treatment Plan: {treatment_plan}
- Image Style: {image_style}

CRITICAL PROMPT REQUIREMENTS:
1. START WITH A CLEAR CONCEPT: Begin with "A {style_lower} [scene description]" or "An {style_lower} of [scene description]"
2. ULTRA-SPECIFIC VISUAL DETAILS: Include at least 8-10 specific visual elements with clear positions and relationships
3. EXACT COLOR SPECIFICATION: Use precise color terminology (e.g., "pastel mint green" not just "green")
4. LIGHTING DIRECTIVES: Specify lighting quality (e.g., "soft diffused morning light")
5. CAMERA ANGLE & PERSPECTIVE: Include exact viewing angle (e.g., "eye-level close-up", "overhead view")
6. ARTISTIC STYLE: {style_instruction}
7. EMOTIONAL TONE: Explicitly state the emotional quality (e.g., "calm", "joyful", "serene atmosphere")
8. TEXTURE SPECIFICS: Detail textures visible in the image (e.g., "soft plush texture")
9. DIFFICULTY: Match the number of elements and the visual complexity to the {difficulty} level

TECHNICAL REQUIREMENTS:
- Your prompt MUST be at least 150 words long
- Include the exact phrase "high detail, high quality, 4k" in your prompt
- End with a technical directive: "8k resolution, professional {style_lower}, masterful composition"
- Ensure the image is not blurry, pixelated, over-saturated or distorted

TOPIC INTEGRATION:
The image MUST focus primarily on "{topic_focus}" while incorporating elements from the treatment plan: "{treatment_plan}".

Return ONLY the prompt text. CREATE YOUR DETAILED PROMPT NOW:"""


def build_composer_prompt(
    difficulty: str,
    age: str,
    autism_level: str,
    topic_focus: str,
    treatment_plan: str,
    image_style: str,
) -> str:
    """Build the query sent to the composer model (plan must be resolved)."""
    return COMPOSER_PROMPT.format(
        difficulty=difficulty,
        age=age,
        autism_level=autism_level,
        topic_focus=topic_focus or "everyday scenes",
        treatment_plan=treatment_plan,
        image_style=image_style,
        style_lower=image_style.lower(),
        style_instruction=style_instruction(image_style) or f"Use a clear {image_style.lower()} style.",
    )


def build_fallback_image_prompt(
    difficulty: str,
    age: str,
    topic_focus: str,
    treatment_plan: str,
    image_style: str,
) -> str:
    """Deterministic image prompt used when the composer model is unavailable."""
    topic = topic_focus or "an everyday scene"
    parts = [
        f"A {image_style.lower()} educational image about {topic} for a {age}-year-old learner.",
        f"Visual complexity: {difficulty}.",
        f"Supports the goal: {treatment_plan}",
        style_instruction(image_style),
        "High detail, high quality, 4k. Calm, friendly atmosphere with clearly separated objects.",
        f"8k resolution, professional {image_style.lower()}, masterful composition.",
    ]
    return " ".join(part for part in parts if part)


# =============================================================================
# Description & Key Details
# =============================================================================

DESCRIPTION_PROMPT = """You are an expert educator specializing in teaching users with autism.
Please provide a detailed description of this image that was generated based on the prompt:
"{prompt}"
The image is intended for a person with autism, focusing on the topic: "{topic_focus}" at a {difficulty} difficulty level.

In your description:
1. List all key objects, characters, and elements present in the image
2. Describe colors, shapes, positions, and relationships between elements
3. Note any emotions, actions, or interactions depicted
4. Highlight details that would be important for the learner to notice
5. Organize your description in a structured, clear way

Your description will be used as a reference to evaluate the learner's observations,
so please be comprehensive but focus on observable details rather than interpretations."""


DETAIL_PROMPT = """You are analyzing an educational image created for a person with autism, based on the prompt: "{prompt}".
The image focuses on the topic: "{topic_focus}".

Please extract a list of unique key details that a person might identify in this image, minimum 5, maximum 15 depending on the image.
Each detail should be a simple, clear phrase describing one observable element.
Focus on concrete, visible elements rather than abstract concepts.

Format your response as a JSON array of strings, each representing one key detail.
Example format: ["red ball on the grass", "smiling girl with brown hair", "blue sky with clouds"]

Ensure each detail is:
1. Directly observable in the image
2. Unique (not a duplicate)
3. Described in simple, concrete language
4. Relevant to what a person would notice"""


def build_description_prompt(prompt: str, difficulty: str, topic_focus: str) -> str:
    return DESCRIPTION_PROMPT.format(prompt=prompt, difficulty=difficulty, topic_focus=topic_focus)


def build_detail_prompt(prompt: str, topic_focus: str) -> str:
    return DETAIL_PROMPT.format(prompt=prompt, topic_focus=topic_focus)


# =============================================================================
# Evaluation
# =============================================================================

EVALUATION_PROMPT = """You are a patient, encouraging teacher working with a {age}-year-old learner ({autism_level}).
The learner is describing the attached image. Judge their latest description against the key details.

TREATMENT PLAN: {treatment_plan}
CURRENT DIFFICULTY: {difficulty}
DIFFICULTY LEVELS (easiest to hardest): {levels}

REFERENCE DESCRIPTION:
{description}

KEY DETAILS (use these exact phrases):
{key_details}

ALREADY IDENTIFIED:
{identified}

LEARNER SAID:
"{utterance}"

Rules:
- Only list key details the learner clearly described in THIS message and that are not already identified
- Copy detail phrases exactly as written in KEY DETAILS
- Feedback: 1-3 short, concrete, positive sentences; hint at one detail they have not found yet
- Only set should_advance when the learner is clearly ready for a harder image
- updated_difficulty must be one of the difficulty levels

Return your evaluation as JSON:
{{
  "feedback": "text for the learner",
  "updated_difficulty": "{difficulty}",
  "should_advance": false,
  "newly_identified": ["exact key detail", "..."],
  "score": 0-10
}}"""


def build_evaluation_prompt(
    utterance: str,
    *,
    age: str,
    autism_level: str,
    treatment_plan: str,
    difficulty: str,
    levels: list[str],
    description: str,
    key_details: list[str],
    identified: list[str],
) -> str:
    return EVALUATION_PROMPT.format(
        utterance=utterance.replace('"', "'"),
        age=age,
        autism_level=autism_level,
        treatment_plan=treatment_plan,
        difficulty=difficulty,
        levels=", ".join(levels),
        description=description or "(no description available)",
        key_details="\n".join(f"- {detail}" for detail in key_details),
        identified="\n".join(f"- {detail}" for detail in identified) or "(none yet)",
    )
