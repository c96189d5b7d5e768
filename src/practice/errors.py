"""Errors raised by the practice lifecycle and progression engine."""

from __future__ import annotations


class PracticeError(Exception):
    """Base class for practice engine errors."""


class CollaboratorFailure(PracticeError):
    """An external collaborator call failed; no state was changed.

    Attributes:
        stage: Which collaborator failed ("prompt", "image", "description",
            "details" or "evaluation").
    """

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage
        self.message = message
