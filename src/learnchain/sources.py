"""
Session log sources.

A source is a plain record of functions (discover, parse, date) for one tool's
log layout. `build_source` picks the functions for a SourceKind.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from . import claude_source, codex_source
from .events import SessionEvent


class SourceKind(str, Enum):
    """Supported coding-assistant log formats."""

    CODEX = "codex"
    CLAUDE_CODE = "claude_code"

    @property
    def label(self) -> str:
        return SOURCE_LABELS[self]

    def other(self) -> "SourceKind":
        return SourceKind.CLAUDE_CODE if self is SourceKind.CODEX else SourceKind.CODEX


SOURCE_LABELS = {
    SourceKind.CODEX: codex_source.LABEL,
    SourceKind.CLAUDE_CODE: claude_source.LABEL,
}


@dataclass(frozen=True)
class SessionSource:
    """Discovery and parsing functions bound to one log root."""

    kind: SourceKind
    label: str
    root: Path
    session_dir_for: Callable[[Path, datetime], Path]
    locate_latest: Callable[[Path], tuple[Optional[Path], Optional[str]]]
    parse_events: Callable[[Path], tuple[list[SessionEvent], Optional[str]]]
    session_date_for: Callable[[Optional[Path], datetime], str]

    def session_dir(self, now: datetime) -> Path:
        return self.session_dir_for(self.root, now)

    def session_date(self, path: Optional[Path], now: datetime) -> str:
        return self.session_date_for(path, now)


def build_source(kind: SourceKind, root: Optional[Path] = None) -> SessionSource:
    """Create the source for `kind`, rooted at `root` or the tool's default location."""
    if kind is SourceKind.CODEX:
        return SessionSource(
            kind=kind,
            label=codex_source.LABEL,
            root=root or codex_source.get_codex_sessions_dir(),
            session_dir_for=codex_source.session_dir,
            locate_latest=codex_source.locate_latest,
            parse_events=codex_source.parse_events,
            session_date_for=codex_source.session_date,
        )
    if kind is SourceKind.CLAUDE_CODE:
        return SessionSource(
            kind=kind,
            label=claude_source.LABEL,
            root=root or claude_source.get_cc_projects_dir(),
            session_dir_for=claude_source.session_dir,
            locate_latest=claude_source.locate_latest,
            parse_events=claude_source.parse_events,
            session_date_for=claude_source.session_date,
        )
    raise ValueError(f"Unknown session source: {kind!r}")
