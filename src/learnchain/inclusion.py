"""Rules deciding which session events are worth summarizing."""

from dataclasses import dataclass
from typing import Iterable, Optional

from .events import SessionEvent

EXECUTION_ERROR_PREFIX = "execution error:"
OPERATION_NOT_PERMITTED_PHRASE = "operation not permitted"
DEFAULT_MAX_EVENTS = 15


def _non_blank(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def _is_execution_error(event: SessionEvent) -> bool:
    first_text = next(
        (text for text in map(_non_blank, event.content_texts) if text is not None), None
    )
    if first_text is not None and first_text.lower().startswith(EXECUTION_ERROR_PREFIX):
        return True
    output = _non_blank(event.output)
    return output is not None and output.lower().startswith(EXECUTION_ERROR_PREFIX)


def _mentions_operation_not_permitted(value: Optional[str]) -> bool:
    text = _non_blank(value)
    return text is not None and OPERATION_NOT_PERMITTED_PHRASE in text.lower()


def _is_permission_denied(event: SessionEvent) -> bool:
    # Arguments are checked here but not by the execution-error rule
    return (
        any(_mentions_operation_not_permitted(text) for text in event.content_texts)
        or _mentions_operation_not_permitted(event.output)
        or _mentions_operation_not_permitted(event.arguments)
    )


def _has_content(event: SessionEvent) -> bool:
    return (
        any(_non_blank(text) for text in event.content_texts)
        or _non_blank(event.arguments) is not None
        or _non_blank(event.output) is not None
    )


@dataclass(frozen=True)
class InclusionRules:
    """Filters events and keeps at most `max_events` of the most recent ones."""

    max_events: int = DEFAULT_MAX_EVENTS

    def should_include_event(self, event: SessionEvent) -> bool:
        return (
            not _is_execution_error(event)
            and not _is_permission_denied(event)
            and _has_content(event)
        )

    def select_events(self, events: Iterable[SessionEvent]) -> list[SessionEvent]:
        """Return the most recent qualifying events, oldest first."""
        selected: list[SessionEvent] = []
        for event in reversed(list(events)):
            if len(selected) >= self.max_events:
                break
            if self.should_include_event(event):
                selected.append(event)
        selected.reverse()
        return selected
