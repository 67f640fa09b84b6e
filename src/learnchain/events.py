"""
Source-agnostic representation of one session log entry.

Both log adapters produce SessionEvent instances, so filtering, summary
rendering and the CLI never need to know which tool wrote the log.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from .utils.errors import join_errors, merge_errors

logger = logging.getLogger(__name__)

UNKNOWN_TIMESTAMP = "<unknown>"


class EventCategory(Enum):
    """Kind of tool activity an event records."""

    FUNCTION_CALL = "function_call"
    FUNCTION_CALL_OUTPUT = "function_call_output"
    TOOL_USE = "tool_use"


@dataclass(frozen=True)
class SessionEvent:
    """One normalized tool event."""

    timestamp: str
    category: EventCategory
    payload_type: str = ""  # display label, e.g. "function_call" or "tool_use:Bash"
    call_id: Optional[str] = None
    arguments: Optional[str] = None
    output: Optional[str] = None
    content_texts: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.payload_type:
            object.__setattr__(self, "payload_type", self.category.value)


def compact_json(value: Any) -> str:
    """Serialize a JSON value without whitespace."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def format_value(value: Any) -> str:
    """Render an output/arguments field as display text."""
    if isinstance(value, str):
        return decode_output_string(value)
    return compact_json(value)


def decode_output_string(raw: str) -> str:
    """Decode a string field that may itself hold JSON.

    An object carrying an "output" key is unwrapped one level, any other JSON
    value is rendered as text (JSON strings come back unescaped), and strings
    that are not JSON pass through verbatim.
    """
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        return raw

    if isinstance(parsed, dict):
        if "output" in parsed:
            inner = parsed["output"]
            return inner if isinstance(inner, str) else compact_json(inner)
        return compact_json(parsed)
    if isinstance(parsed, str):
        return parsed
    return compact_json(parsed)


def scan_jsonl(path: Path, on_record: Callable[[Any], None]) -> Optional[str]:
    """Feed every JSON line of `path` to `on_record`.

    Blank lines are skipped. A line that is not JSON, or for which
    `on_record` raises ValueError, is recorded as `<path>:#<line>: <err>` and
    the scan continues. A read or UTF-8 decoding failure stops the scan and
    is reported as `<path> (line <n>): <err>` after the collected issues.

    Returns:
        The joined error text, or None if the whole file was clean
    """
    issues: list[str] = []
    hard_error: Optional[str] = None
    line_number = 0

    try:
        f = open(path, "rb")
    except OSError as e:
        return f"{path}: {e}"

    with f:
        try:
            for line_number, raw_line in enumerate(f, start=1):
                line = raw_line.decode("utf-8").strip()
                if not line:
                    continue
                try:
                    on_record(json.loads(line))
                except ValueError as e:
                    issues.append(f"{path}:#{line_number}: {e}")
        except UnicodeDecodeError as e:
            hard_error = f"{path} (line {line_number}): {e}"
        except OSError as e:
            hard_error = f"{path} (line {line_number + 1}): {e}"

    if issues:
        logger.debug("Skipped %d malformed line(s) in %s", len(issues), path)
    if hard_error:
        logger.debug("Aborted reading %s: %s", path, hard_error)
    return merge_errors(join_errors(issues), hard_error)
