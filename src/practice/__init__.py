"""
Practice core: session lifecycle and progression engine.

Components:
- models: Session, SessionArchive, Difficulty, Verdict and friends
- checklist: projection of key details against identified details
- progress: threshold math, encouragement tiers, advancement rules
- lifecycle: SessionLifecycleManager (mints and archives sessions)
- engine: ProgressionEngine (one learner turn at a time)

Lifecycle and engine are imported from their modules directly; they depend
on src.generation, which itself builds on the models here.
"""

from src.practice.checklist import all_identified, project
from src.practice.errors import CollaboratorFailure, PracticeError
from src.practice.models import (
    ChatEntry,
    ChecklistItem,
    Difficulty,
    ParseMode,
    Session,
    SessionArchive,
    SessionParams,
    Speaker,
    Verdict,
)
from src.practice.progress import (
    AdvancementDecision,
    EncouragementTier,
    encouragement_tier,
    evaluate_advancement,
    threshold_count,
)

__all__ = [
    # Models
    "ChatEntry",
    "ChecklistItem",
    "Difficulty",
    "ParseMode",
    "Session",
    "SessionArchive",
    "SessionParams",
    "Speaker",
    "Verdict",
    # Checklist & progress
    "project",
    "all_identified",
    "AdvancementDecision",
    "EncouragementTier",
    "encouragement_tier",
    "evaluate_advancement",
    "threshold_count",
    # Errors
    "PracticeError",
    "CollaboratorFailure",
]
