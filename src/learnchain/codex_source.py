"""
Discover and parse Codex CLI session logs.

Codex writes one JSONL file per session under `~/.codex/sessions/YYYY/MM/DD/`.
Only `function_call` and `function_call_output` payloads are kept.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .events import UNKNOWN_TIMESTAMP, EventCategory, SessionEvent, format_value, scan_jsonl
from .utils.errors import join_errors

logger = logging.getLogger(__name__)

LABEL = "Codex CLI"
DEFAULT_CODEX_SESSIONS_DIR = Path.home() / ".codex" / "sessions"
SESSION_EXTENSION = "jsonl"

RELEVANT_PAYLOAD_TYPES = {
    "function_call": EventCategory.FUNCTION_CALL,
    "function_call_output": EventCategory.FUNCTION_CALL_OUTPUT,
}


def get_codex_sessions_dir() -> Path:
    """Get Codex sessions directory from env or default."""
    env_dir = os.environ.get("CODEX_HOME")
    if env_dir:
        return Path(env_dir) / "sessions"
    return DEFAULT_CODEX_SESSIONS_DIR


def session_dir(root: Path, now: datetime) -> Path:
    """Directory holding the logs for the day of `now`."""
    return root / now.strftime("%Y") / now.strftime("%m") / now.strftime("%d")


def session_date(path: Optional[Path], now: datetime) -> str:
    """Codex shards by day, so the session date is always the day being loaded."""
    return now.strftime("%Y-%m-%d")


def _is_session_log(entry: os.DirEntry) -> bool:
    if not entry.is_file():
        return False
    return Path(entry.name).suffix[1:].lower() == SESSION_EXTENSION


def locate_latest(directory: Path) -> tuple[Optional[Path], Optional[str]]:
    """Find the most recently modified session log in one day directory.

    Returns:
        (latest file or None, advisory error or None)
    """
    issues: list[str] = []
    latest: Optional[tuple[float, Path]] = None

    try:
        entries = list(os.scandir(directory))
    except OSError as e:
        logger.debug("Cannot read session directory %s: %s", directory, e)
        return None, f"{directory}: {e}"

    for entry in entries:
        try:
            if not _is_session_log(entry):
                continue
            modified = entry.stat().st_mtime
        except OSError as e:
            issues.append(f"{directory} ({entry.name}): {e}")
            continue
        if latest is None or modified > latest[0]:
            latest = (modified, Path(entry.path))

    return (latest[1] if latest else None), join_errors(issues)


def _content_texts(content: Any) -> tuple[str, ...]:
    if not isinstance(content, list):
        return ()
    return tuple(
        fragment["text"]
        for fragment in content
        if isinstance(fragment, dict) and isinstance(fragment.get("text"), str)
    )


def _event_from_record(record: Any) -> Optional[SessionEvent]:
    """Build an event from one decoded line, or None when it is not relevant.

    Raises:
        ValueError: If the record does not have the expected shape
    """
    if not isinstance(record, dict):
        raise ValueError(f"expected a JSON object, found {type(record).__name__}")
    payload = record.get("payload")
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise ValueError("payload is not an object")

    payload_type = payload.get("type")
    category = RELEVANT_PAYLOAD_TYPES.get(payload_type) if isinstance(payload_type, str) else None
    if category is None:
        return None

    timestamp = record.get("timestamp")
    output = payload.get("output")
    arguments = payload.get("arguments")
    call_id = payload.get("call_id")
    return SessionEvent(
        timestamp=timestamp if isinstance(timestamp, str) else UNKNOWN_TIMESTAMP,
        category=category,
        payload_type=payload_type,
        call_id=call_id if isinstance(call_id, str) else None,
        arguments=format_value(arguments) if arguments is not None else None,
        output=format_value(output) if output is not None else None,
        content_texts=_content_texts(payload.get("content")),
    )


def parse_events(path: Path) -> tuple[list[SessionEvent], Optional[str]]:
    """Parse a Codex session JSONL file.

    Malformed lines are collected as soft issues and skipped. A read failure
    stops the scan; the events parsed so far are returned with the error.
    """
    events: list[SessionEvent] = []

    def collect(record: Any) -> None:
        event = _event_from_record(record)
        if event is not None:
            events.append(event)

    error = scan_jsonl(path, collect)
    return events, error
