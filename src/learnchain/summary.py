"""Markdown summary of a session, used as the body of the generation prompt."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .events import EventCategory, SessionEvent
from .inclusion import InclusionRules

logger = logging.getLogger(__name__)

EMPTY_NOTE = "_No event content, arguments, or output available._"

# Categories whose arguments are the interesting part
CALL_CATEGORIES = {EventCategory.FUNCTION_CALL, EventCategory.TOOL_USE}


@dataclass
class SummaryArtifact:
    """Rendered summary and where (if anywhere) it was written."""

    path: Optional[Path]
    content: str
    error: Optional[str] = None


def _non_blank(value: Optional[str]) -> Optional[str]:
    return value if value is not None and value.strip() else None


def _render_event(event: SessionEvent) -> list[str]:
    lines = [f"## {event.timestamp} - {event.payload_type}", ""]
    for text in event.content_texts:
        lines.extend([text, ""])

    arguments = _non_blank(event.arguments)
    output = _non_blank(event.output)
    if event.category in CALL_CATEGORIES and arguments is not None:
        lines.extend(["Arguments:", arguments, ""])
    elif output is not None:
        lines.extend(["Output:", output, ""])
    return lines


def render_summary(
    events: Sequence[SessionEvent], session_date: str, rules: InclusionRules
) -> str:
    """Render the selected events as a markdown document."""
    selected = rules.select_events(events)
    lines = [f"# Session Output - {session_date}", ""]
    for event in selected:
        lines.extend(_render_event(event))

    if not selected:
        lines.append(EMPTY_NOTE)
    elif len(selected) == rules.max_events and len(selected) < len(events):
        lines.append(f"_Limited to the {rules.max_events} most recent matching events._")
    return "\n".join(lines) + "\n"


def summary_filename(session_date: str, latest_file: Optional[Path] = None) -> str:
    if latest_file is not None and latest_file.stem:
        return f"{latest_file.stem}.md"
    return f"session-{session_date}.md"


def write_summary(
    events: Sequence[SessionEvent],
    session_date: str,
    rules: InclusionRules,
    output_dir: Path,
    latest_file: Optional[Path] = None,
    persist: bool = False,
) -> SummaryArtifact:
    """Render the summary and, when `persist` is set, write it to `output_dir`.

    Write failures are reported on the artifact rather than raised.
    """
    content = render_summary(events, session_date, rules)
    if not persist:
        return SummaryArtifact(path=None, content=content)

    path = output_dir / summary_filename(session_date, latest_file)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.warning("Failed to write summary to %s: %s", path, e)
        return SummaryArtifact(path=None, content=content, error=f"{path}: {e}")

    logger.debug("Wrote session summary to %s", path)
    return SummaryArtifact(path=path, content=content)
