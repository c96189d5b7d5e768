"""
Tolerant parsing of free-text model output.

Both parsers run an explicit fallback chain and report which step produced
the value:

    Structured     -> JSON (bare, fenced, or embedded in prose)
    LineExtracted  -> bullet lines / "key: value" lines
    Default        -> fixed generic value

Neither parser raises on malformed input.
"""

from __future__ import annotations

import json
import re
from typing import Any

from loguru import logger

from src.practice.models import Difficulty, ParseMode, ParsedDetails, ParsedVerdict, Verdict

MAX_DETAILS = 15
MAX_SCAN_CHARS = 20_000
DEFAULT_DETAILS = ["object in image", "color", "shape", "background"]
DEFAULT_FEEDBACK = "Thank you for sharing! Let's keep looking at the picture together."

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_KEY_VALUE = re.compile(r"^\s*[*\-]?\s*\**([A-Za-z_ ]{1,40}?)\**\s*:\s*(.*)$")

_TRUE_WORDS = {"true", "yes", "y", "1"}


# =============================================================================
# Detail lists
# =============================================================================


def parse_detail_list(text: str | None) -> ParsedDetails:
    """Parse a key-detail list: JSON array, else bullet lines, else generic."""
    text = (text or "").strip()

    data = _load_json(text, "[", "]")
    if isinstance(data, list):
        details = _clean_details(item for item in data if isinstance(item, str))
        if details:
            return ParsedDetails(ParseMode.STRUCTURED, details)

    bullets = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(("-", "*")):
            bullets.append(stripped[1:].strip())
    details = _clean_details(bullets)
    if details:
        logger.warning(f"Detail list was not JSON; extracted {len(details)} bullet lines")
        return ParsedDetails(ParseMode.LINE_EXTRACTED, details)

    logger.warning("Detail list could not be parsed; using generic details")
    return ParsedDetails(ParseMode.DEFAULT, list(DEFAULT_DETAILS))


def _clean_details(items) -> list[str]:
    seen: set[str] = set()
    details: list[str] = []
    for item in items:
        detail = item.strip().strip('"').strip()
        key = detail.lower()
        if detail and key not in seen:
            seen.add(key)
            details.append(detail)
    return details[:MAX_DETAILS]


# =============================================================================
# Verdicts
# =============================================================================


def parse_verdict(text: str | None, current_difficulty: Difficulty) -> ParsedVerdict:
    """Parse an evaluator reply into a Verdict.

    Missing or unknown difficulty falls back to current_difficulty.
    """
    text = (text or "").strip()

    data = _load_json(text, "{", "}")
    if isinstance(data, dict):
        return ParsedVerdict(ParseMode.STRUCTURED, _verdict_from_mapping(data, current_difficulty))

    fields = _key_value_lines(text)
    if "feedback" in fields:
        logger.warning("Evaluation was not JSON; parsed key/value lines")
        return ParsedVerdict(ParseMode.LINE_EXTRACTED, _verdict_from_mapping(fields, current_difficulty))

    logger.warning("Evaluation could not be parsed; using default verdict")
    return ParsedVerdict(ParseMode.DEFAULT, default_verdict(current_difficulty))


def default_verdict(current_difficulty: Difficulty) -> Verdict:
    return Verdict(
        feedback=DEFAULT_FEEDBACK,
        proposed_difficulty=current_difficulty,
        should_advance=False,
        newly_identified=(),
        score=0.0,
    )


def _verdict_from_mapping(data: dict[str, Any], current_difficulty: Difficulty) -> Verdict:
    feedback = str(data.get("feedback") or "").strip() or DEFAULT_FEEDBACK
    raw_difficulty = (
        data.get("updated_difficulty")
        or data.get("difficulty")
        or data.get("proposed_difficulty")
    )
    return Verdict(
        feedback=feedback,
        proposed_difficulty=Difficulty.parse(raw_difficulty) or current_difficulty,
        should_advance=_as_bool(data.get("should_advance", False)),
        newly_identified=tuple(_as_list(data.get("newly_identified") or data.get("identified"))),
        score=_as_score(data.get("score", 0)),
    )


def _key_value_lines(text: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for line in text.splitlines():
        match = _KEY_VALUE.match(" ".join(line.split()))
        if not match:
            continue
        key = "_".join(match.group(1).lower().split())
        fields.setdefault(key, match.group(2).strip())
    if "newly_identified" not in fields and "identified_details" in fields:
        fields["newly_identified"] = fields["identified_details"]
    return fields


# =============================================================================
# Helpers
# =============================================================================


def _load_json(text: str, opener: str, closer: str) -> Any:
    """Return decoded JSON from text, a fenced block or an embedded match.

    The embedded match spans the first opener to the last closer.
    """
    if not text:
        return None
    candidates = [text]
    fence = _FENCE.search(text[:MAX_SCAN_CHARS])
    if fence:
        candidates.append(fence.group(1).strip())
    start = text.find(opener)
    end = text.rfind(closer)
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except (ValueError, RecursionError):
            continue
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_WORDS


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    text = str(value).strip()
    if text.lower() in {"", "none", "[]", "n/a"}:
        return []
    return [part.strip().strip('"') for part in text.strip("[]").split(",") if part.strip()]


def _as_score(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        match = re.search(r"-?\d+(?:\.\d+)?", str(value))
        return float(match.group(0)) if match else 0.0
