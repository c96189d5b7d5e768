"""
Progress Policy: threshold math, encouragement tiers and advancement rules.

Everything here is pure. The progression engine feeds it counts and flags
and gets back an AdvancementDecision plus the system message to open the
next session with.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from src.practice.models import Difficulty, Session, normalize_threshold

__all__ = [
    "AdvancementDecision",
    "EncouragementTier",
    "ProgressSnapshot",
    "encouragement_tier",
    "evaluate_advancement",
    "normalize_threshold",
    "percent_identified",
    "progress_snapshot",
    "select_system_message",
    "threshold_count",
]


# =============================================================================
# Threshold math
# =============================================================================


def threshold_count(total: int, fraction: float) -> int:
    """Number of details needed to advance: ceil(total * fraction).

    The product is rounded first so float noise (10 * 0.7 = 7.000000000000001)
    does not push the count up by one.
    """
    return math.ceil(round(total * fraction, 9))


def percent_identified(identified: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return identified / total * 100.0


# =============================================================================
# Encouragement
# =============================================================================


class EncouragementTier(str, Enum):
    """Progress message tiers, best first."""

    THRESHOLD_REACHED = "threshold_reached"
    ALMOST_THERE = "almost_there"
    HALFWAY = "halfway"
    GOOD_START = "good_start"
    FIND_MORE = "find_more"

    @property
    def message(self) -> str:
        return _TIER_MESSAGES[self]


_TIER_MESSAGES = {
    EncouragementTier.THRESHOLD_REACHED: "Threshold reached! Ready to advance!",
    EncouragementTier.ALMOST_THERE: "Almost there! Keep going!",
    EncouragementTier.HALFWAY: "Halfway there! You're doing great!",
    EncouragementTier.GOOD_START: "Good start! Keep looking!",
    EncouragementTier.FIND_MORE: "Let's find more details!",
}


def encouragement_tier(identified: int, total: int, fraction: float) -> EncouragementTier:
    if identified >= threshold_count(total, fraction):
        return EncouragementTier.THRESHOLD_REACHED
    percent = percent_identified(identified, total)
    if percent >= 75:
        return EncouragementTier.ALMOST_THERE
    if percent >= 50:
        return EncouragementTier.HALFWAY
    if percent >= 25:
        return EncouragementTier.GOOD_START
    return EncouragementTier.FIND_MORE


@dataclass(frozen=True)
class ProgressSnapshot:
    """Numbers behind the progress bar and attempt counter."""

    identified: int
    total: int
    percent: float
    threshold_count: int
    threshold_percent: float
    tier: EncouragementTier
    attempt_count: int
    attempt_limit: int
    difficulty: Difficulty


def progress_snapshot(session: Session) -> ProgressSnapshot:
    total = len(session.key_details)
    identified = session.identified_count
    needed = threshold_count(total, session.details_threshold)
    return ProgressSnapshot(
        identified=identified,
        total=total,
        percent=percent_identified(identified, total),
        threshold_count=needed,
        threshold_percent=percent_identified(needed, total),
        tier=encouragement_tier(identified, total, session.details_threshold),
        attempt_count=session.attempt_count,
        attempt_limit=session.attempt_limit,
        difficulty=session.difficulty,
    )


# =============================================================================
# Advancement
# =============================================================================


@dataclass(frozen=True)
class AdvancementDecision:
    """Why (and whether) a session should be replaced after a turn."""

    threshold_reached: bool
    all_identified: bool
    attempts_exhausted: bool
    should_advance: bool
    current_difficulty: Difficulty
    selected_difficulty: Difficulty

    @property
    def advance(self) -> bool:
        return (
            self.threshold_reached
            or self.all_identified
            or self.attempts_exhausted
            or self.should_advance
        )

    @property
    def difficulty_changed(self) -> bool:
        return self.selected_difficulty != self.current_difficulty


def evaluate_advancement(
    *,
    identified: int,
    total: int,
    fraction: float,
    all_identified: bool,
    attempt_count: int,
    attempt_limit: int,
    should_advance: bool,
    current_difficulty: Difficulty,
    proposed_difficulty: Difficulty | None,
) -> AdvancementDecision:
    """Apply the advancement predicate and difficulty selection rule.

    The evaluator's proposed difficulty is only adopted when the threshold
    was reached or the evaluator asked to advance; exhaustion and a full
    checklist alone keep the current level.
    """
    threshold_reached = identified >= threshold_count(total, fraction)
    attempts_exhausted = attempt_count >= attempt_limit

    selected = current_difficulty
    if (threshold_reached or should_advance) and proposed_difficulty is not None:
        selected = proposed_difficulty

    return AdvancementDecision(
        threshold_reached=threshold_reached,
        all_identified=all_identified,
        attempts_exhausted=attempts_exhausted,
        should_advance=should_advance,
        current_difficulty=current_difficulty,
        selected_difficulty=selected,
    )


ATTEMPTS_EXHAUSTED_MESSAGE = "You've used all your allowed attempts. Let's try a new image."
SAME_LEVEL_MESSAGE = "Great job identifying the details! Here's a new image at the same difficulty level."
NEW_IMAGE_MESSAGE = "Let's try a new image!"


def select_system_message(decision: AdvancementDecision, identified: int, total: int) -> str:
    """Opening system message for the replacement session (first match wins)."""
    if decision.attempts_exhausted:
        return ATTEMPTS_EXHAUSTED_MESSAGE
    if decision.threshold_reached and decision.difficulty_changed:
        return (
            f"Congratulations! You've identified enough details ({identified}/{total}) "
            f"to advance to {decision.selected_difficulty.value} difficulty! "
            "Here's a new image to describe."
        )
    if decision.should_advance:
        return (
            f"Congratulations! You've advanced to {decision.selected_difficulty.value} difficulty! "
            "Here's a new image to describe."
        )
    if decision.threshold_reached or decision.all_identified:
        return SAME_LEVEL_MESSAGE
    return NEW_IMAGE_MESSAGE
