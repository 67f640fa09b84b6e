"""
Load today's session events from the first log source that has any.

Sources are tried in order. Problems from skipped sources are kept as
advisory text on the returned load; loading never raises.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .events import SessionEvent
from .sources import SessionSource, build_source
from .utils.errors import merge_errors

if TYPE_CHECKING:
    from .config import AppConfig

logger = logging.getLogger(__name__)


@dataclass
class SessionLoad:
    """Result of loading one source for one day."""

    source: str
    session_date: str
    session_dir: Path
    latest_file: Optional[Path] = None
    events: list[SessionEvent] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def has_results(self) -> bool:
        return self.latest_file is not None or bool(self.events)

    @classmethod
    def empty(cls, now: datetime, source: str) -> "SessionLoad":
        return cls(source=source, session_date=now.strftime("%Y-%m-%d"), session_dir=Path())


def load_source(source: SessionSource, now: datetime) -> SessionLoad:
    """Discover the latest log for `source` and parse it."""
    directory = source.session_dir(now)
    latest_file, discovery_error = source.locate_latest(directory)
    if latest_file is not None:
        events, parse_error = source.parse_events(latest_file)
    else:
        events, parse_error = [], None

    logger.debug(
        "%s: %s in %s (%d events)",
        source.label,
        latest_file or "no session file",
        directory,
        len(events),
    )
    return SessionLoad(
        source=source.label,
        session_date=source.session_date(latest_file, now),
        session_dir=directory,
        latest_file=latest_file,
        events=events,
        error=merge_errors(discovery_error, parse_error),
    )


class SessionLoader:
    """Tries each configured source in order and keeps the first with results."""

    def __init__(self, sources: list[SessionSource]):
        self.sources = list(sources)

    @classmethod
    def from_config(cls, config: "AppConfig") -> "SessionLoader":
        primary = config.session_source
        kinds = [primary]
        if config.fallback_source:
            kinds.append(primary.other())
        return cls([build_source(kind, config.root_for(kind)) for kind in kinds])

    def load(self, now: Optional[datetime] = None) -> SessionLoad:
        """Load the first source with a session file or events for the day of `now`."""
        now = now or datetime.now()
        aggregated_error: Optional[str] = None
        fallback: Optional[SessionLoad] = None

        for source in self.sources:
            load = load_source(source, now)
            if load.has_results:
                load.error = merge_errors(load.error, aggregated_error)
                return load

            if load.error:
                aggregated_error = merge_errors(aggregated_error, f"{load.source}: {load.error}")
            load.error = None
            fallback = load

        if fallback is None:
            fallback = SessionLoad.empty(now, "unknown")
        logger.debug("No session logs found in %d source(s)", len(self.sources))
        fallback.error = aggregated_error
        return fallback
