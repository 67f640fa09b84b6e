"""
Command line interface for learnchain.

Usage:
    learnchain events [--source codex|claude_code] [--all]
    learnchain summary [--write]
    learnchain generate
    learnchain quiz
    learnchain analytics [--days N]
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional

import click
from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from .app import LearnChainApp
from .config import AppConfig, load_config
from .quiz import QuizAction, option_label
from .sources import SourceKind
from .utils.errors import StoreError
from .utils.logging import LOG_FILENAME, get_logger

console = Console()

POLL_INTERVAL = 0.1

QUIZ_KEYS = {
    "h": QuizAction.PREVIOUS_GROUP,
    "l": QuizAction.NEXT_GROUP,
    "j": QuizAction.NEXT_OPTION,
    "k": QuizAction.PREVIOUS_OPTION,
    "n": QuizAction.NEXT_QUESTION,
    "p": QuizAction.PREVIOUS_QUESTION,
    "\r": QuizAction.SELECT,
    "\n": QuizAction.SELECT,
    " ": QuizAction.SELECT,
    "s": QuizAction.SELECT,
}
QUIT_KEYS = {"q", "\x03", "\x1b"}
REGENERATE_KEYS = {"r", "R"}


def _print_errors(app: LearnChainApp) -> None:
    if app.errors:
        console.print(f"[yellow]⚠️  {app.errors}[/]")


def _build_app(ctx: click.Context) -> LearnChainApp:
    return LearnChainApp(ctx.obj["config"])


def _wait_for_generation(app: LearnChainApp) -> bool:
    """Start a generation and block until it finishes. Returns True on success."""
    if not app.start_generation():
        return False
    with Live(Spinner("dots", "Generating learning response…"), console=console, transient=True):
        while not app.poll_generation():
            time.sleep(POLL_INTERVAL)
    return app.quiz.response is not None


@click.group()
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="LEARNCHAIN_CONFIG",
    help="Path to app_config.toml (default: config/app_config.toml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Optional[Path]) -> None:
    """Turn today's coding-assistant session into a quiz."""
    config, config_error = load_config(config_path)
    log_level = logging.DEBUG if verbose else logging.INFO
    # The debug log file is only written in verbose mode
    get_logger(log_file=config.output_dir / LOG_FILENAME if verbose else None, level=log_level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    if config_error:
        console.print(f"[yellow]⚠️  {config_error}[/]")


@cli.command()
@click.option(
    "--source",
    type=click.Choice([kind.value for kind in SourceKind]),
    help="Only read this log format",
)
@click.option("--all", "show_all", is_flag=True, help="Show every parsed event, not just the summarized ones")
@click.pass_context
def events(ctx: click.Context, source: Optional[str], show_all: bool) -> None:
    """List today's session events."""
    config: AppConfig = ctx.obj["config"]
    if source:
        config = config.model_copy(
            update={"session_source": SourceKind(source), "fallback_source": False}
        )
    app = LearnChainApp(config)
    session = app.load_session()

    shown = session.events if show_all else app.rules.select_events(session.events)
    table = Table(title=f"{session.source} events - {session.session_date}")
    table.add_column("Timestamp", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Call ID", style="yellow")
    table.add_column("Details")
    for event in shown:
        details = event.arguments or event.output or " ".join(event.content_texts)
        if len(details) > 120:
            details = details[:117] + "..."
        table.add_row(event.timestamp, event.payload_type, event.call_id or "", details)

    console.print(table)
    if session.latest_file:
        console.print(f"[dim]From {session.latest_file}[/]")
    else:
        console.print(f"[dim]No session log found in {session.session_dir}[/]")
    _print_errors(app)


@cli.command()
@click.option("--write", is_flag=True, help="Also write the summary to the output directory")
@click.pass_context
def summary(ctx: click.Context, write: bool) -> None:
    """Print the markdown summary sent to the model."""
    config: AppConfig = ctx.obj["config"]
    if write:
        config = config.model_copy(update={"write_output_artifacts": True})
    app = LearnChainApp(config)
    app.load_session()

    assert app.summary is not None
    console.print(Markdown(app.summary.content))
    if app.summary.path:
        console.print(f"[green]Saved to {app.summary.path}[/]")
    _print_errors(app)


@cli.command()
@click.pass_context
def generate(ctx: click.Context) -> None:
    """Generate and record a learning response for today's session."""
    app = _build_app(ctx)
    app.load_session()
    ok = _wait_for_generation(app)
    if app.status:
        console.print(app.status)
    _print_errors(app)
    if not ok:
        sys.exit(1)


def render_quiz(app: LearnChainApp) -> Group:
    """Render the current quiz position."""
    quiz = app.quiz
    group = quiz.current_group()
    if group is None:
        return Group(Text("No knowledge groups available.", style="yellow"))

    cursor = quiz.cursor
    total_groups = len(quiz.response.groups) if quiz.response else 0
    title = f"{group.group_name or 'Untitled'} ({cursor.group_index + 1}/{total_groups})"
    if group.language:
        title += f" - {group.language}"

    body: list = []
    question = quiz.current_question()
    if question is None:
        body.append(Text("This group has no quiz questions.", style="dim"))
    else:
        body.append(
            Text(f"Q{cursor.question_index + 1}/{len(group.quiz)}: {question.question}", style="bold")
        )
        for index, option in enumerate(question.options):
            marker = "➤" if index == cursor.option_index else " "
            style = "reverse" if index == cursor.option_index else ""
            body.append(Text(f"{marker} {option_label(index)}. {option.selection}", style=style))

    if cursor.feedback:
        style = "green" if cursor.summary_revealed else "red"
        body.append(Text(""))
        body.append(Text(cursor.feedback, style=style))
    if cursor.summary_revealed:
        body.append(Markdown(group.summary))
        for resource in group.resources:
            body.append(Text(f"- {resource}", style="blue"))
        body.append(Text("Press any key for the next question.", style="dim"))

    help_text = Text("h/l group  j/k option  n/p question  enter select  r regenerate  q quit", style="dim")
    return Group(Panel(Group(*body), title=title), help_text)


@cli.command()
@click.pass_context
def quiz(ctx: click.Context) -> None:
    """Generate a quiz from today's session and take it."""
    app = _build_app(ctx)
    app.load_session()
    if not _wait_for_generation(app):
        _print_errors(app)
        sys.exit(1)

    console.print(app.status or "")
    while True:
        console.clear()
        console.print(render_quiz(app))
        _print_errors(app)
        key = click.getchar()
        if key in QUIT_KEYS:
            break
        if key in REGENERATE_KEYS:
            _wait_for_generation(app)
            continue
        action = QUIZ_KEYS.get(key)
        if action is None and not app.quiz.cursor.awaiting_advance:
            continue
        app.handle_quiz_action(action or QuizAction.NEXT_QUESTION)


@cli.command()
@click.option("--days", type=click.IntRange(min=1), help="Window length in days")
@click.pass_context
def analytics(ctx: click.Context, days: Optional[int]) -> None:
    """Show first-try correctness over the trailing window."""
    app = _build_app(ctx)
    try:
        snapshot = app.analytics(days)
    except StoreError as e:
        console.print(f"[red]Failed to load analytics: {e}[/]")
        sys.exit(1)

    table = Table(title="Learning history")
    table.add_column("Date", style="dim")
    table.add_column("Questions", justify="right", style="cyan")
    table.add_column("First-try correct", justify="right", style="green")
    table.add_column("Attempts", justify="right", style="yellow")
    table.add_column("Groups (cumulative)", justify="right", style="blue")
    for day in snapshot.daily:
        table.add_row(
            day.date.isoformat(),
            str(day.total_questions),
            str(day.first_try_correct),
            str(day.total_attempts),
            str(day.cumulative_groups),
        )
    console.print(table)

    console.print(
        f"Questions generated: {snapshot.total_questions}  "
        f"First-try correct: {snapshot.total_first_try_correct}/{snapshot.total_attempts} "
        f"({snapshot.first_try_rate:.0%})"
    )
    if snapshot.knowledge_groups:
        console.print("\nKnowledge groups:", style="bold")
        for group in snapshot.knowledge_groups:
            console.print(f"- {group}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
