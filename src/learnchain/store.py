"""SQLite history of generated quizzes and first attempts.

One row per generated knowledge group and one row per first attempt at a
question. Attempts are unique on (session date, group, question), so the
first recorded answer wins.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .analytics import (
    DEFAULT_WINDOW_DAYS,
    AttemptRow,
    GenerationRow,
    KnowledgeAnalytics,
    build_analytics,
    window_start,
)
from .knowledge import LearningResponse
from .utils.errors import StoreError

logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS knowledge_responses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_date TEXT NOT NULL,
        recorded_at TEXT NOT NULL,
        knowledge_type_group TEXT NOT NULL,
        summary TEXT NOT NULL,
        knowledge_type_language TEXT NOT NULL,
        quiz_json TEXT NOT NULL,
        quiz_question_count INTEGER NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_knowledge_responses_session_date
    ON knowledge_responses(session_date)
    """,
    """
    CREATE TABLE IF NOT EXISTS quiz_attempts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_date TEXT NOT NULL,
        recorded_at TEXT NOT NULL,
        knowledge_type_group TEXT NOT NULL,
        knowledge_type_language TEXT,
        question TEXT NOT NULL,
        first_try_correct INTEGER NOT NULL,
        UNIQUE(session_date, knowledge_type_group, question)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_quiz_attempts_session_date
    ON quiz_attempts(session_date)
    """,
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring row with unparseable session date %r", value)
        return None


class AttemptStore:
    """Learning history database, opened per operation."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open the database, creating the file and schema on first use."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(
                f"failed to create directory for knowledge store at {self.db_path.parent}: {e}"
            ) from e

        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreError(f"failed to open knowledge store at {self.db_path}: {e}") from e

        try:
            with conn:
                for statement in SCHEMA:
                    conn.execute(statement)
            yield conn
        except sqlite3.Error as e:
            raise StoreError(f"failed to initialize knowledge store schema: {e}") from e
        finally:
            conn.close()

    def record_generation(self, session_date: str, response: LearningResponse) -> None:
        """Store one row per knowledge group in a single transaction."""
        if response.is_empty():
            return

        recorded_at = _utc_now()
        rows = [
            (
                session_date,
                recorded_at,
                group.group_name,
                group.summary,
                group.language,
                json.dumps(group.quiz_wire(), ensure_ascii=False),
                group.question_count,
            )
            for group in response.groups
        ]

        with self._connect() as conn:
            try:
                with conn:
                    conn.executemany(
                        """
                        INSERT INTO knowledge_responses (
                            session_date,
                            recorded_at,
                            knowledge_type_group,
                            summary,
                            knowledge_type_language,
                            quiz_json,
                            quiz_question_count
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        rows,
                    )
            except sqlite3.Error as e:
                raise StoreError(f"failed to insert knowledge response into store: {e}") from e
        logger.debug("Recorded %d knowledge group(s) for %s", len(rows), session_date)

    def record_first_attempt(
        self,
        session_date: str,
        group: str,
        language: Optional[str],
        question: str,
        correct: bool,
    ) -> None:
        """Record an attempt unless one already exists for this question."""
        with self._connect() as conn:
            try:
                with conn:
                    cursor = conn.execute(
                        """
                        INSERT OR IGNORE INTO quiz_attempts (
                            session_date,
                            recorded_at,
                            knowledge_type_group,
                            knowledge_type_language,
                            question,
                            first_try_correct
                        ) VALUES (?, ?, ?, ?, ?, ?)
                        """,
                        (session_date, _utc_now(), group, language, question, int(correct)),
                    )
            except sqlite3.Error as e:
                raise StoreError(f"failed to insert quiz attempt into store: {e}") from e
        if cursor.rowcount == 0:
            logger.debug("Attempt for %r on %s already recorded", question, session_date)

    def load_window(
        self, days: int = DEFAULT_WINDOW_DAYS, today: Optional[date] = None
    ) -> KnowledgeAnalytics:
        """Aggregate the trailing `days` days ending `today` (local date by default)."""
        today = today or date.today()
        start = window_start(today, days).isoformat()

        with self._connect() as conn:
            try:
                generation_rows = [
                    GenerationRow(day, group, count)
                    for raw_date, group, count in conn.execute(
                        """
                        SELECT session_date, knowledge_type_group, quiz_question_count
                        FROM knowledge_responses
                        WHERE session_date >= ?
                        """,
                        (start,),
                    )
                    if (day := _parse_date(raw_date)) is not None
                ]
                attempt_rows = [
                    AttemptRow(day, bool(correct))
                    for raw_date, correct in conn.execute(
                        """
                        SELECT session_date, first_try_correct
                        FROM quiz_attempts
                        WHERE session_date >= ?
                        """,
                        (start,),
                    )
                    if (day := _parse_date(raw_date)) is not None
                ]
                catalog = [
                    row[0]
                    for row in conn.execute(
                        "SELECT DISTINCT knowledge_type_group FROM knowledge_responses"
                    )
                ]
            except sqlite3.Error as e:
                raise StoreError(f"failed to load analytics from knowledge store: {e}") from e

        return build_analytics(generation_rows, attempt_rows, catalog, today, days)

    def attempt_count(self) -> int:
        with self._connect() as conn:
            try:
                (count,) = conn.execute("SELECT COUNT(*) FROM quiz_attempts").fetchone()
            except sqlite3.Error as e:
                raise StoreError(f"failed to count quiz attempts: {e}") from e
        return count
