"""
VisoLearn: picture-description practice CLI.

A Rich terminal loop: generate an image, describe it, get feedback, and
move to a new image when enough details are found or attempts run out.

Commands:
- visolearn start   - Start an interactive practice session
- visolearn prompt  - Print a composed image prompt for the given options
- visolearn styles  - List image styles and difficulty levels

In-session commands:
- /new      new image at the current difficulty
- /images   save all session images
- /log      save the session log (JSON)
- /history  show finished sessions
- /quit     leave the session
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Prompt
from rich.table import Table

from config import get_settings
from src.core.logging import configure_logging
from src.delivery.exporter import save_all_session_images, save_session_log
from src.delivery.practice_visuals import (
    render_chat,
    render_history,
    render_session_panel,
)
from src.generation.gemini import (
    GeminiDescriptionGenerator,
    GeminiDetailExtractor,
    GeminiEvaluator,
    GeminiPromptComposer,
)
from src.generation.image_synthesizer import HuggingFaceImageSynthesizer
from src.practice.engine import ProgressionEngine, TurnOutcome
from src.practice.errors import CollaboratorFailure
from src.practice.lifecycle import SessionLifecycleManager
from src.practice.models import (
    IMAGE_STYLES,
    ChecklistItem,
    Difficulty,
    Session,
    SessionArchive,
    SessionParams,
    default_treatment_plan,
)


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="visolearn",
    help="VisoLearn: adaptive picture-description practice",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Session State
# =============================================================================


@dataclass
class PracticeState:
    """What the loop holds between turns."""

    params: SessionParams
    session: Optional[Session] = None
    archive: SessionArchive = field(default_factory=SessionArchive)
    checklist: list[ChecklistItem] = field(default_factory=list)


def build_engine() -> tuple[SessionLifecycleManager, ProgressionEngine, HuggingFaceImageSynthesizer]:
    """Wire the Gemini and Hugging Face collaborators."""
    synthesizer = HuggingFaceImageSynthesizer()
    lifecycle = SessionLifecycleManager(
        composer=GeminiPromptComposer(),
        synthesizer=synthesizer,
        describer=GeminiDescriptionGenerator(),
        extractor=GeminiDetailExtractor(),
    )
    return lifecycle, ProgressionEngine(lifecycle, GeminiEvaluator()), synthesizer


def _show(state: PracticeState, chat_limit: int = 6) -> None:
    if state.session is None:
        console.print("[dim]No image yet. Type /new to generate one.[/dim]")
        return
    console.print(render_session_panel(state.session, state.checklist))
    if state.session.chat:
        console.print(Panel(render_chat(state.session.chat, limit=chat_limit), title="Chat", border_style="dim"))


async def _new_image(lifecycle: SessionLifecycleManager, state: PracticeState) -> None:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Generating image...", total=None)
        try:
            result = await lifecycle.start_session(state.params, state.session, state.archive)
        except CollaboratorFailure as e:
            console.print(f"[red]Could not start a session ({e.stage}): {e.message}[/red]")
            return

    state.session = result.session
    state.archive = result.archive
    state.checklist = result.checklist
    console.print(f"[green]New image ready[/green] [dim](prompt: {result.session.prompt[:80]}...)[/dim]")


async def _submit(engine: ProgressionEngine, state: PracticeState, utterance: str) -> None:
    if state.session is None:
        state.session = Session()
    try:
        result = await engine.submit_utterance(utterance, state.session, state.archive, state.checklist)
    except CollaboratorFailure as e:
        console.print(f"[red]Evaluation failed: {e.message}[/red]")
        return

    if result.verdict is not None:
        console.print(f"[bold yellow]Teacher:[/bold yellow] {result.verdict.feedback}")
    if result.outcome == TurnOutcome.NO_IMAGE:
        console.print("[yellow]Please generate an image first (/new).[/yellow]")
        state.session = result.session if result.session.has_prompt else None
        return
    if result.outcome == TurnOutcome.ADVANCED:
        console.print(f"\n[bold cyan]{result.system_message}[/bold cyan]")
    elif result.outcome == TurnOutcome.ADVANCE_FAILED:
        console.print(f"[red]{result.system_message}[/red]")

    state.session = result.session
    state.archive = result.archive
    state.checklist = result.checklist


async def run_loop(state: PracticeState) -> None:
    settings = get_settings()
    lifecycle, engine, synthesizer = build_engine()
    try:
        await _new_image(lifecycle, state)
        while True:
            _show(state)
            text = Prompt.ask("\n[bold green]Describe the picture[/bold green]").strip()
            if not text:
                continue
            command = text.lower()
            if command in ("/quit", "/exit", "/q"):
                break
            if command == "/new":
                await _new_image(lifecycle, state)
            elif command == "/images":
                report = save_all_session_images(state.archive, state.session, settings.export_dir)
                console.print(f"[green]{report.message}[/green]" if report.ok else f"[red]{report.message}[/red]")
            elif command == "/log":
                report = save_session_log(state.archive, state.session, settings.export_dir)
                console.print(f"[green]{report.message}[/green]" if report.ok else f"[red]{report.message}[/red]")
            elif command == "/history":
                console.print(render_history(state.archive.with_active(state.session)))
            else:
                await _submit(engine, state, text)
    finally:
        await synthesizer.close()

    console.print(f"\n[bold cyan]Session over.[/bold cyan] {len(state.archive)} finished image(s).")


# =============================================================================
# Commands
# =============================================================================


@app.command()
def start(
    age: Optional[str] = typer.Option(None, "--age", "-a", help="Learner age"),
    autism_level: Optional[str] = typer.Option(None, "--level", "-l", help="Autism level (Level 1-3)"),
    topic: str = typer.Option("", "--topic", "-t", help="Topic focus for images"),
    plan: str = typer.Option("", "--plan", "-p", help="Treatment plan (blank uses the level default)"),
    attempts: Optional[int] = typer.Option(None, "--attempts", help="Attempts before a new image"),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Details needed to advance (0.7 or 70)"),
    style: Optional[str] = typer.Option(None, "--style", "-s", help="Image style"),
) -> None:
    """
    Start an interactive practice session.

    Generates an image, then judges each description until the threshold
    is reached or attempts run out, then moves to a new image.
    """
    settings = get_settings()
    if not settings.has_ai_configured():
        console.print("[red]GEMINI_API_KEY is not set.[/red]")
        raise typer.Exit(1)
    if not settings.has_image_configured():
        console.print("[yellow]HF_TOKEN is not set; image requests may be rejected.[/yellow]")

    params = SessionParams(
        age=age or settings.default_age,
        autism_level=autism_level or settings.default_autism_level,
        topic_focus=topic,
        treatment_plan=plan,
        attempt_limit=attempts if attempts is not None else settings.default_attempt_limit,
        details_threshold=threshold if threshold is not None else settings.default_details_threshold,
        image_style=style or settings.default_image_style,
    )
    logger.debug(f"Starting practice with {params.model_dump()}")

    console.print("\n[bold cyan]VisoLearn[/bold cyan] - Picture Description Practice", style="bold")
    console.print("=" * 40)
    console.print("[dim]Commands: /new /images /log /history /quit[/dim]\n")

    asyncio.run(run_loop(PracticeState(params=params)))


@app.command()
def prompt(
    difficulty: str = typer.Option(Difficulty.default().value, "--difficulty", "-d", help="Difficulty level"),
    age: str = typer.Option("3", "--age", "-a", help="Learner age"),
    autism_level: str = typer.Option("Level 1", "--level", "-l", help="Autism level"),
    topic: str = typer.Option("", "--topic", "-t", help="Topic focus"),
    plan: str = typer.Option("", "--plan", "-p", help="Treatment plan"),
    style: str = typer.Option("Realistic", "--style", "-s", help="Image style"),
) -> None:
    """Print a composed image prompt without generating an image."""
    level = Difficulty.parse(difficulty)
    if level is None:
        console.print(f"[red]Unknown difficulty: {difficulty}[/red]")
        raise typer.Exit(1)

    composer = GeminiPromptComposer()
    text = asyncio.run(composer.compose(level, age, autism_level, topic, plan, style))
    console.print(Panel(text, title=f"Prompt ({level.value}, {style})", border_style="cyan"))


@app.command()
def styles() -> None:
    """List image styles, difficulty levels and default treatment plans."""
    table = Table(title="Image Styles", show_header=False)
    for name in IMAGE_STYLES:
        table.add_row(name)
    console.print(table)

    levels = Table(title="Difficulty Levels (easiest first)", show_header=False)
    for level in Difficulty:
        levels.add_row(str(level.rank + 1), level.value)
    console.print(levels)

    plans = Table(title="Default Treatment Plans")
    plans.add_column("Level")
    plans.add_column("Plan", overflow="fold")
    for name in ("Level 1", "Level 2", "Level 3"):
        plans.add_row(name, default_treatment_plan(name))
    console.print(plans)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_file)
    app()


if __name__ == "__main__":
    main()
