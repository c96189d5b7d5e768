"""
Export/Archive Adapter.

Writes session images and a JSON session log to disk. Failures are isolated
per item and reported through ExportReport; nothing here raises on I/O errors.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

from src.practice.models import IMAGE_REDACTED, Session, SessionArchive

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


@dataclass
class ExportReport:
    """Outcome of one export call."""

    saved: int = 0
    failed: int = 0
    path: Optional[Path] = None
    message: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.path is not None


def _timestamp(now: Optional[datetime]) -> str:
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def _write_image(image: bytes, path: Path, report: ExportReport) -> None:
    try:
        path.write_bytes(image)
        report.saved += 1
        logger.debug(f"Saved image to {path}")
    except OSError as e:
        report.failed += 1
        report.errors.append(f"{path.name}: {e}")
        logger.error(f"Error writing image {path}: {e}")


# =============================================================================
# Images
# =============================================================================


def save_all_session_images(
    archive: SessionArchive,
    active: Optional[Session],
    base_dir: str | Path = ".",
    now: Optional[datetime] = None,
) -> ExportReport:
    """
    Save every session image into saved_images_<timestamp>/.

    Archived sessions are written as session_<i>_<timestamp>.png and the
    active one as active_session_<timestamp>.png. Sessions without an image
    are skipped.
    """
    timestamp = _timestamp(now)
    output_dir = Path(base_dir) / f"saved_images_{timestamp}"
    report = ExportReport(path=output_dir)

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Error creating directory {output_dir}: {e}")
        report.path = None
        report.message = f"Error saving images: {e}"
        return report

    for index, session in enumerate(archive):
        if session.image:
            _write_image(session.image, output_dir / f"session_{index}_{timestamp}.png", report)

    if active is not None and active.image:
        _write_image(active.image, output_dir / f"active_session_{timestamp}.png", report)

    report.message = f"Successfully saved {report.saved} images to folder: {output_dir}"
    if report.failed:
        report.message += f" ({report.failed} failed)"
    logger.info(report.message)
    return report


# =============================================================================
# Session log
# =============================================================================


def session_log_entries(archive: SessionArchive, active: Optional[Session]) -> tuple[list[dict], int]:
    """Serialized sessions with image data removed, plus the failure count."""
    entries: list[dict] = []
    failed = 0
    for session in archive.with_active(active):
        try:
            entry = session.to_dict(redact_image=True)
            entry["image"] = IMAGE_REDACTED
            json.dumps(entry)
        except (TypeError, ValueError) as e:
            failed += 1
            logger.error(f"Skipping session {session.session_id} in log: {e}")
            continue
        entries.append(entry)
    return entries, failed


def save_session_log(
    archive: SessionArchive,
    active: Optional[Session],
    base_dir: str | Path = ".",
    now: Optional[datetime] = None,
) -> ExportReport:
    """Write session_log_<timestamp>.json with archive plus active session."""
    path = Path(base_dir) / f"session_log_{_timestamp(now)}.json"
    entries, failed = session_log_entries(archive, active)
    report = ExportReport(saved=len(entries), failed=failed, path=path)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(entries, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        logger.error(f"Error writing session log: {e}")
        report.saved = 0
        report.failed = len(entries) + failed
        report.path = None
        report.errors.append(str(e))
        report.message = f"Error saving session log: {e}"
        return report

    report.message = f"Session log saved to: {path}"
    logger.info(report.message)
    return report
