"""
Practice Visual Components.

Rich renderables for the terminal practice loop: difficulty label, detail
checklist, progress bar with threshold marker, attempt counter and chat.
"""

from __future__ import annotations

from typing import Sequence

from rich import box
from rich.console import Group
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text

from src.practice.models import ChatEntry, ChecklistItem, Session, Speaker
from src.practice.progress import EncouragementTier, ProgressSnapshot, progress_snapshot

# =============================================================================
# COLOR THEME
# =============================================================================

PRACTICE_THEME = {
    "primary": "#4FC3F7",  # Sky blue - headings
    "secondary": "#81C784",  # Soft green - learner
    "accent": "#FFB74D",  # Warm orange - teacher
    "success": "#66BB6A",
    "warning": "#FFD54F",
    "error": "#EF5350",
    "dim": "#90A4AE",
    "white": "#ECEFF1",
}

STYLES = {
    "primary": Style(color=PRACTICE_THEME["primary"], bold=True),
    "success": Style(color=PRACTICE_THEME["success"], bold=True),
    "warning": Style(color=PRACTICE_THEME["warning"], bold=True),
    "error": Style(color=PRACTICE_THEME["error"], bold=True),
    "dim": Style(color=PRACTICE_THEME["dim"]),
}

SPEAKER_STYLES = {
    Speaker.LEARNER: Style(color=PRACTICE_THEME["secondary"], bold=True),
    Speaker.TEACHER: Style(color=PRACTICE_THEME["accent"], bold=True),
    Speaker.SYSTEM: Style(color=PRACTICE_THEME["primary"], italic=True),
}

TIER_COLORS = {
    EncouragementTier.THRESHOLD_REACHED: PRACTICE_THEME["success"],
    EncouragementTier.ALMOST_THERE: PRACTICE_THEME["success"],
    EncouragementTier.HALFWAY: PRACTICE_THEME["warning"],
    EncouragementTier.GOOD_START: PRACTICE_THEME["warning"],
    EncouragementTier.FIND_MORE: PRACTICE_THEME["dim"],
}


# =============================================================================
# Components
# =============================================================================


def render_difficulty_label(session: Session) -> Text:
    text = Text()
    text.append("Current Difficulty: ", style=STYLES["dim"])
    text.append(session.difficulty.value, style=STYLES["primary"])
    return text


def render_checklist(checklist: Sequence[ChecklistItem]) -> Table:
    """Key details with a check mark for each one found."""
    table = Table(
        box=box.SIMPLE,
        show_header=True,
        header_style=STYLES["primary"],
        title="Details to Identify",
        title_style=STYLES["primary"],
    )
    table.add_column("", width=3, justify="center")
    table.add_column("Detail", overflow="fold")

    for item in checklist:
        if item.identified:
            table.add_row(Text("✓", style=STYLES["success"]), Text(item.detail, style=STYLES["success"]))
        else:
            table.add_row(Text("○", style=STYLES["dim"]), Text(item.detail))
    return table


def render_progress_bar(snapshot: ProgressSnapshot, width: int = 30) -> Text:
    """
    Progress bar with the advancement threshold marked.

    Args:
        snapshot: Progress numbers for the active session
        width: Bar width in characters

    Returns:
        Rich Text with bar, counts and encouragement message
    """
    filled = int(round(snapshot.percent / 100 * width))
    marker = min(width - 1, int(round(snapshot.threshold_percent / 100 * width)))
    color = TIER_COLORS[snapshot.tier]

    text = Text()
    text.append("Progress ", style=STYLES["dim"])
    text.append("[")
    for index in range(width):
        if index == marker and index >= filled:
            text.append("|", style=STYLES["warning"])
        elif index < filled:
            text.append("#", style=Style(color=color))
        else:
            text.append("-", style=STYLES["dim"])
    text.append("] ")
    text.append(
        f"{snapshot.identified}/{snapshot.total} ({snapshot.percent:.0f}%)",
        style=Style(color=color, bold=True),
    )
    text.append(
        f"  need {snapshot.threshold_count} ({snapshot.threshold_percent:.0f}%)\n",
        style=STYLES["dim"],
    )
    text.append(snapshot.tier.message, style=Style(color=color, bold=True))
    return text


def render_attempts(snapshot: ProgressSnapshot) -> Text:
    remaining = max(0, snapshot.attempt_limit - snapshot.attempt_count)
    style = STYLES["error"] if remaining <= 1 else STYLES["dim"]
    return Text(
        f"Attempts: {snapshot.attempt_count}/{snapshot.attempt_limit} ({remaining} left)",
        style=style,
    )


def render_chat(chat: Sequence[ChatEntry], limit: int | None = None) -> Text:
    entries = list(chat)[-limit:] if limit else list(chat)
    text = Text()
    for index, entry in enumerate(entries):
        if index:
            text.append("\n")
        text.append(f"{entry.speaker.value}: ", style=SPEAKER_STYLES[entry.speaker])
        text.append(entry.message)
    return text


def render_session_panel(session: Session, checklist: Sequence[ChecklistItem]) -> Panel:
    """Full progress view for the active session."""
    snapshot = progress_snapshot(session)
    parts = [
        render_difficulty_label(session),
        render_checklist(checklist),
        render_progress_bar(snapshot),
        render_attempts(snapshot),
    ]
    return Panel(
        Group(*parts),
        title=f"[bold]Session {session.session_id}[/bold]",
        border_style=Style(color=TIER_COLORS[snapshot.tier]),
        box=box.ROUNDED,
        padding=(0, 1),
    )


def render_history(sessions: Sequence[Session]) -> Table:
    """One row per session in the archive view."""
    table = Table(box=box.SIMPLE_HEAVY, header_style=STYLES["primary"], title="Session History")
    table.add_column("#", width=3, justify="right")
    table.add_column("Difficulty")
    table.add_column("Found", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Status")

    for index, session in enumerate(sessions, start=1):
        status = Text("completed", style=STYLES["success"]) if session.completed else Text("open", style=STYLES["dim"])
        table.add_row(
            str(index),
            session.difficulty.value,
            f"{session.identified_count}/{len(session.key_details)}",
            f"{session.attempt_count}/{session.attempt_limit}",
            status,
        )
    return table
