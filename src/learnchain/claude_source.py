"""
Discover and parse Claude Code session logs.

Claude Code keeps session JSONL files anywhere below `~/.claude/projects/`
(one directory per project, no date sharding). Each record wraps a message
whose content list may hold `tool_use` entries; those are the events we keep.
"""

import logging
import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from .events import UNKNOWN_TIMESTAMP, EventCategory, SessionEvent, compact_json, scan_jsonl
from .utils.errors import join_errors

logger = logging.getLogger(__name__)

LABEL = "Claude Code"
DEFAULT_CC_PROJECTS_DIR = Path.home() / ".claude" / "projects"
SESSION_EXTENSIONS = ("jsonl", "json")
ACTIONABLE_CONTENT_TYPES = {"tool_use"}

# (label, record key) pairs copied into the event text, in display order
_RECORD_CONTEXT_FIELDS = (("cwd", "cwd"), ("branch", "gitBranch"), ("session", "sessionId"))
_MESSAGE_CONTEXT_FIELDS = (("model", "model"), ("role", "role"))


def get_cc_projects_dir() -> Path:
    """Get Claude Code projects directory from env or default."""
    env_dir = os.environ.get("CLAUDE_HOME")
    if env_dir:
        return Path(env_dir) / "projects"
    return DEFAULT_CC_PROJECTS_DIR


def session_dir(root: Path, now: datetime) -> Path:
    """Claude Code logs are not sharded by day; the whole root is searched."""
    return root


def _date_from_segments(parts: tuple[str, ...]) -> Optional[date]:
    """Find three consecutive path segments forming YYYY/MM/DD."""
    for i in range(len(parts) - 2):
        year, month, day = parts[i : i + 3]
        if not (len(year) == 4 and len(month) == 2 and len(day) == 2):
            continue
        if not (year.isdigit() and month.isdigit() and day.isdigit()):
            continue
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            continue
    return None


def session_date(path: Optional[Path], now: datetime) -> str:
    """Derive the session date from the path, else the file's mtime, else `now`."""
    if path is None:
        return now.strftime("%Y-%m-%d")

    from_path = _date_from_segments(path.parent.parts)
    if from_path is not None:
        return from_path.isoformat()

    try:
        return datetime.fromtimestamp(path.stat().st_mtime).date().isoformat()
    except OSError as e:
        logger.debug("Cannot stat %s for session date: %s", path, e)
        return now.strftime("%Y-%m-%d")


def _is_session_log(name: str) -> bool:
    return Path(name).suffix[1:].lower() in SESSION_EXTENSIONS


def locate_latest(root: Path) -> tuple[Optional[Path], Optional[str]]:
    """Find the most recently modified session log anywhere below `root`.

    Walks directories with an explicit stack so deep project trees cannot
    exhaust the recursion limit. Unreadable directories or entries are
    reported and skipped.
    """
    issues: list[str] = []
    latest: Optional[tuple[float, Path]] = None
    stack: list[Path] = [root]

    while stack:
        directory = stack.pop()
        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            issues.append(f"{directory}: {e}")
            continue

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    stack.append(Path(entry.path))
                    continue
                if not (entry.is_file() and _is_session_log(entry.name)):
                    continue
                modified = entry.stat().st_mtime
            except OSError as e:
                issues.append(f"{directory} ({entry.name}): {e}")
                continue
            if latest is None or modified > latest[0]:
                latest = (modified, Path(entry.path))

    if issues:
        logger.debug("Discovery under %s reported %d issue(s)", root, len(issues))
    return (latest[1] if latest else None), join_errors(issues)


def _context_texts(record: dict, message: dict) -> tuple[str, ...]:
    texts = []
    for label, key in _RECORD_CONTEXT_FIELDS:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            texts.append(f"{label}: {value}")
    for label, key in _MESSAGE_CONTEXT_FIELDS:
        value = message.get(key)
        if isinstance(value, str) and value.strip():
            texts.append(f"{label}: {value}")
    return tuple(texts)


def _events_from_record(record: Any) -> list[SessionEvent]:
    """Extract tool invocations from one decoded record.

    Raises:
        ValueError: If the record does not have the expected shape
    """
    if not isinstance(record, dict):
        raise ValueError(f"expected a JSON object, found {type(record).__name__}")
    message = record.get("message")
    if message is None:
        return []
    if not isinstance(message, dict):
        raise ValueError("message is not an object")
    content = message.get("content")
    if not isinstance(content, list):
        # Plain-text user prompts carry a string here
        return []

    timestamp = record.get("timestamp")
    timestamp = timestamp if isinstance(timestamp, str) else UNKNOWN_TIMESTAMP
    message_id = message.get("id")
    context = _context_texts(record, message)

    events = []
    for entry in content:
        if not isinstance(entry, dict):
            continue
        entry_type = entry.get("type")
        if entry_type not in ACTIONABLE_CONTENT_TYPES:
            continue

        name = entry.get("name")
        payload_type = f"{entry_type}:{name}" if isinstance(name, str) and name else entry_type
        call_id = entry.get("id")
        if not isinstance(call_id, str) or not call_id:
            call_id = message_id if isinstance(message_id, str) else None
        tool_input = entry.get("input")

        events.append(
            SessionEvent(
                timestamp=timestamp,
                category=EventCategory.TOOL_USE,
                payload_type=payload_type,
                call_id=call_id,
                arguments=compact_json(tool_input) if tool_input is not None else None,
                output=None,
                content_texts=context,
            )
        )
    return events


def parse_events(path: Path) -> tuple[list[SessionEvent], Optional[str]]:
    """Parse a Claude Code session JSONL file.

    Error handling matches the Codex parser: malformed records are soft
    issues, a read failure returns partial events plus a hard error.
    """
    events: list[SessionEvent] = []

    def collect(record: Any) -> None:
        events.extend(_events_from_record(record))

    error = scan_jsonl(path, collect)
    return events, error
