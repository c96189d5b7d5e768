"""Checklist projection of key details against the identified set."""

from __future__ import annotations

from typing import Iterable, Sequence

from src.practice.models import ChecklistItem


def project(key_details: Sequence[str], identified: Iterable[str]) -> list[ChecklistItem]:
    """Pair each key detail with whether it has been identified.

    Order and ids follow key_details, so items never move as the identified
    set grows.
    """
    identified_set = set(identified)
    return [
        ChecklistItem(id=index, detail=detail, identified=detail in identified_set)
        for index, detail in enumerate(key_details)
    ]


def all_identified(checklist: Sequence[ChecklistItem]) -> bool:
    """True when every item is identified (vacuously true for an empty checklist)."""
    return all(item.identified for item in checklist)
