"""
Practice data model: sessions, checklist items, archive and verdicts.

A Session is the unit of state for one learner/image pairing. It is minted
by the lifecycle manager, updated turn-by-turn by the progression engine and
finally copied into the SessionArchive when a replacement is minted.
"""

from __future__ import annotations

import base64
import copy
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, NamedTuple

from pydantic import BaseModel, Field, field_validator

IMAGE_REDACTED = "[IMAGE_DATA_REMOVED]"

DEFAULT_ATTEMPT_LIMIT = 3
DEFAULT_DETAILS_THRESHOLD = 0.7
DEFAULT_IMAGE_STYLE = "Realistic"
DEFAULT_AUTISM_LEVEL = "Level 1"
DEFAULT_AGE = "3"

MIN_THRESHOLD = 0.1
MAX_THRESHOLD = 1.0

IMAGE_STYLES = ["Realistic", "Illustration", "Cartoon", "Watercolor", "3D Rendering"]

DEFAULT_TREATMENT_PLANS = {
    "Level 1": (
        "Develop social communication skills and manage specific interests "
        "while maintaining independence."
    ),
    "Level 2": (
        "Focus on structured learning environments with visual supports "
        "and consistent routines."
    ),
    "Level 3": (
        "Provide highly structured support with simplified visual information "
        "and sensory-appropriate environments."
    ),
}


def default_treatment_plan(autism_level: str) -> str:
    """Level-keyed default plan; unknown levels get the Level 1 plan."""
    return DEFAULT_TREATMENT_PLANS.get(autism_level, DEFAULT_TREATMENT_PLANS["Level 1"])


def normalize_threshold(value: float | None) -> float:
    """Normalize a details threshold into [0.1, 1.0].

    Values above 1.0 are read as percentages (70 -> 0.7).
    """
    if value is None:
        value = DEFAULT_DETAILS_THRESHOLD
    value = float(value)
    if value > 1.0:
        value /= 100.0
    return max(MIN_THRESHOLD, min(MAX_THRESHOLD, value))


def normalize_phrase(text: str) -> str:
    """Case/space-insensitive key used to match detail phrases."""
    return " ".join(text.lower().split())


def new_session_id() -> str:
    return uuid.uuid4().hex[:8]


# =============================================================================
# Enums
# =============================================================================


class Difficulty(str, Enum):
    """Ordered image difficulty levels."""

    VERY_SIMPLE = "Very Simple"
    SIMPLE = "Simple"
    MODERATE = "Moderate"
    DETAILED = "Detailed"
    VERY_DETAILED = "Very Detailed"

    @property
    def rank(self) -> int:
        return list(Difficulty).index(self)

    @classmethod
    def default(cls) -> Difficulty:
        return cls.VERY_SIMPLE

    @classmethod
    def parse(cls, text: str | Difficulty | None) -> Difficulty | None:
        """Parse a level name, tolerating case, spacing and underscores."""
        if isinstance(text, Difficulty):
            return text
        if not text:
            return None
        key = normalize_phrase(str(text).replace("_", " ").replace("-", " "))
        for level in cls:
            if normalize_phrase(level.value) == key:
                return level
        return None


class Speaker(str, Enum):
    """Who wrote a chat entry."""

    LEARNER = "Learner"
    TEACHER = "Teacher"
    SYSTEM = "System"


class ParseMode(str, Enum):
    """Which step of a fallback chain produced a parsed value."""

    STRUCTURED = "structured"
    LINE_EXTRACTED = "line_extracted"
    DEFAULT = "default"


# =============================================================================
# Value types
# =============================================================================


class ChatEntry(NamedTuple):
    """One (speaker, message) pair of the transcript."""

    speaker: Speaker
    message: str


@dataclass(frozen=True)
class ChecklistItem:
    """Projection of one key detail and whether it has been identified."""

    id: int
    detail: str
    identified: bool


@dataclass(frozen=True)
class Verdict:
    """Structured judgement of one learner utterance."""

    feedback: str
    proposed_difficulty: Difficulty | None
    should_advance: bool = False
    newly_identified: tuple[str, ...] = ()
    score: float = 0.0


@dataclass(frozen=True)
class ParsedVerdict:
    mode: ParseMode
    verdict: Verdict


@dataclass(frozen=True)
class ParsedDetails:
    mode: ParseMode
    details: list[str]


# =============================================================================
# Session parameters
# =============================================================================


class SessionParams(BaseModel):
    """Learner parameters used to mint a session."""

    age: str = Field(DEFAULT_AGE, description="Learner age")
    autism_level: str = Field(DEFAULT_AUTISM_LEVEL, description="Autism level tag, e.g. 'Level 1'")
    topic_focus: str = Field("", description="Topic the image should focus on")
    treatment_plan: str = Field("", description="Treatment plan text; blank uses the level default")
    attempt_limit: int = Field(DEFAULT_ATTEMPT_LIMIT, ge=1, description="Attempts before a new image")
    details_threshold: float = Field(
        DEFAULT_DETAILS_THRESHOLD,
        description="Fraction (or percentage) of details required to advance",
    )
    image_style: str = Field(DEFAULT_IMAGE_STYLE, description="Image style tag")

    @field_validator("age", mode="before")
    @classmethod
    def _age_as_text(cls, value: Any) -> str:
        return str(value)

    @field_validator("attempt_limit", mode="before")
    @classmethod
    def _default_attempt_limit(cls, value: Any) -> Any:
        return DEFAULT_ATTEMPT_LIMIT if value is None else value

    @field_validator("details_threshold", mode="before")
    @classmethod
    def _normalize_threshold(cls, value: Any) -> float:
        return normalize_threshold(value)

    @field_validator("treatment_plan", "topic_focus", mode="before")
    @classmethod
    def _blank_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    def resolved_treatment_plan(self) -> str:
        """Return the plan text, substituting the level default when blank."""
        if self.treatment_plan.strip():
            return self.treatment_plan
        return default_treatment_plan(self.autism_level)

    @classmethod
    def from_session(cls, session: Session) -> SessionParams:
        return cls(
            age=session.age,
            autism_level=session.autism_level,
            topic_focus=session.topic_focus,
            treatment_plan=session.treatment_plan,
            attempt_limit=session.attempt_limit,
            details_threshold=session.details_threshold,
            image_style=session.image_style,
        )


# =============================================================================
# Session
# =============================================================================


@dataclass
class Session:
    """State for one learner/image pairing.

    Invariants:
    - identified_details is a subset of key_details
    - attempt_count never decreases
    - details_threshold is normalized into [0.1, 1.0]
    - key_details can only be set once
    """

    prompt: str | None = None
    image: bytes | None = None
    description: str = ""
    chat: list[ChatEntry] = field(default_factory=list)
    treatment_plan: str = ""
    topic_focus: str = ""
    key_details: tuple[str, ...] = ()
    identified_details: list[str] = field(default_factory=list)
    used_hints: list[str] = field(default_factory=list)
    difficulty: Difficulty = Difficulty.VERY_SIMPLE
    age: str = DEFAULT_AGE
    autism_level: str = DEFAULT_AUTISM_LEVEL
    attempt_limit: int = DEFAULT_ATTEMPT_LIMIT
    attempt_count: int = 0
    details_threshold: float = DEFAULT_DETAILS_THRESHOLD
    image_style: str = DEFAULT_IMAGE_STYLE
    completed: bool = False
    session_id: str = field(default_factory=new_session_id)
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if self.attempt_limit < 1:
            raise ValueError("attempt_limit must be a positive integer")
        if self.attempt_count < 0:
            raise ValueError("attempt_count cannot be negative")
        self.difficulty = Difficulty.parse(self.difficulty) or Difficulty.default()
        self.details_threshold = normalize_threshold(self.details_threshold)
        self.chat = [ChatEntry(Speaker(s), m) for s, m in self.chat]
        self.identified_details = _unique(self.identified_details)
        self.used_hints = _unique(self.used_hints)
        missing = set(self.identified_details) - set(self.key_details)
        if missing:
            raise ValueError(f"Identified details not among key details: {sorted(missing)}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "key_details":
            value = tuple(_unique(value))
            if getattr(self, "key_details", ()) and value != self.key_details:
                raise AttributeError("key_details cannot change once set")
        super().__setattr__(name, value)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def has_image(self) -> bool:
        return bool(self.image)

    @property
    def has_prompt(self) -> bool:
        return bool(self.prompt)

    @property
    def identified_count(self) -> int:
        return len(self.identified_details)

    @property
    def image_data_url(self) -> str | None:
        if not self.image:
            return None
        return "data:image/png;base64," + base64.b64encode(self.image).decode("ascii")

    def match_key_detail(self, phrase: str) -> str | None:
        """Return the key detail matching a phrase, in key-detail spelling."""
        key = normalize_phrase(phrase)
        for detail in self.key_details:
            if normalize_phrase(detail) == key:
                return detail
        return None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_chat(self, speaker: Speaker, message: str) -> None:
        self.chat.append(ChatEntry(speaker, message))

    def record_attempt(self) -> None:
        self.attempt_count += 1

    def mark_identified(self, phrases: Iterable[str]) -> list[str]:
        """Mark phrases as identified; returns the ones that were new.

        Phrases not among the key details are ignored.
        """
        newly: list[str] = []
        for phrase in phrases:
            detail = self.match_key_detail(phrase)
            if detail and detail not in self.identified_details and detail not in newly:
                newly.append(detail)
        self.identified_details.extend(newly)
        return newly

    def clone(self) -> Session:
        return copy.deepcopy(self)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self, redact_image: bool = False) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        if self.image is None:
            image = None
        elif redact_image:
            image = IMAGE_REDACTED
        else:
            image = self.image_data_url
        return {
            "session_id": self.session_id,
            "created_at": self.created_at,
            "prompt": self.prompt,
            "image": image,
            "image_description": self.description,
            "chat": [[entry.speaker.value, entry.message] for entry in self.chat],
            "treatment_plan": self.treatment_plan,
            "topic_focus": self.topic_focus,
            "key_details": list(self.key_details),
            "identified_details": list(self.identified_details),
            "used_hints": list(self.used_hints),
            "difficulty": self.difficulty.value,
            "age": self.age,
            "autism_level": self.autism_level,
            "attempt_limit": self.attempt_limit,
            "attempt_count": self.attempt_count,
            "details_threshold": self.details_threshold,
            "image_style": self.image_style,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        """Create from a dictionary produced by to_dict()."""
        image = data.get("image")
        image_bytes = None
        if isinstance(image, str) and image.startswith("data:image") and "," in image:
            image_bytes = base64.b64decode(image.split(",", 1)[1])
        return cls(
            prompt=data.get("prompt"),
            image=image_bytes,
            description=data.get("image_description") or "",
            chat=[ChatEntry(Speaker(s), m) for s, m in data.get("chat", [])],
            treatment_plan=data.get("treatment_plan") or "",
            topic_focus=data.get("topic_focus") or "",
            key_details=tuple(data.get("key_details", [])),
            identified_details=list(data.get("identified_details", [])),
            used_hints=list(data.get("used_hints", [])),
            difficulty=Difficulty.parse(data.get("difficulty")) or Difficulty.default(),
            age=str(data.get("age", DEFAULT_AGE)),
            autism_level=data.get("autism_level", DEFAULT_AUTISM_LEVEL),
            attempt_limit=data.get("attempt_limit", DEFAULT_ATTEMPT_LIMIT),
            attempt_count=data.get("attempt_count", 0),
            details_threshold=data.get("details_threshold", DEFAULT_DETAILS_THRESHOLD),
            image_style=data.get("image_style", DEFAULT_IMAGE_STYLE),
            completed=data.get("completed", False),
            session_id=data.get("session_id") or new_session_id(),
            created_at=data.get("created_at") or time.time(),
        )


# =============================================================================
# Archive
# =============================================================================


class SessionArchive:
    """Append-only history of finished sessions.

    append() returns a new archive; an existing archive never changes.
    """

    __slots__ = ("_sessions",)

    def __init__(self, sessions: Iterable[Session] = ()):
        self._sessions: tuple[Session, ...] = tuple(sessions)

    def append(self, session: Session) -> SessionArchive:
        return SessionArchive((*self._sessions, session))

    def with_active(self, active: Session | None) -> list[Session]:
        """Archive plus the active session when it is a real one."""
        sessions = list(self._sessions)
        if active is not None and active.has_prompt:
            sessions.append(active)
        return sessions

    @property
    def sessions(self) -> tuple[Session, ...]:
        return self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self):
        return iter(self._sessions)

    def __getitem__(self, index: int) -> Session:
        return self._sessions[index]

    def __repr__(self) -> str:
        return f"SessionArchive({len(self._sessions)} sessions)"


def _unique(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
