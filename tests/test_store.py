"""Tests for the SQLite attempt store."""

import json
import sqlite3
from datetime import date

import pytest

from learnchain.knowledge import LearningResponse
from learnchain.store import AttemptStore
from learnchain.utils.errors import StoreError


def _response(*groups: tuple[str, int]) -> LearningResponse:
    return LearningResponse.model_validate(
        {
            "response": [
                {
                    "knowledge_type_group": name,
                    "summary": f"About {name}",
                    "knowledge_type_language": "Python",
                    "resources": ["https://docs.python.org/3/"],
                    "quiz": [
                        {
                            "question": f"{name} question {i}",
                            "options": [
                                {"selection": "yes", "is_correct_answer": True},
                                {"selection": "no", "is_correct_answer": False},
                            ],
                        }
                        for i in range(count)
                    ],
                }
                for name, count in groups
            ]
        }
    )


@pytest.fixture
def store(tmp_path):
    """Create a store in a temporary directory."""
    return AttemptStore(tmp_path / "output" / "learning_history.sqlite")


class TestAttemptStore:
    def test_schema_created_on_first_use(self, store):
        store.record_first_attempt("2025-03-07", "Generators", None, "What is yield?", True)

        with sqlite3.connect(store.db_path) as conn:
            tables = {
                row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
            }
            indexes = {
                row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='index'")
            }

        assert {"knowledge_responses", "quiz_attempts"} <= tables
        assert "idx_knowledge_responses_session_date" in indexes
        assert "idx_quiz_attempts_session_date" in indexes

    def test_record_generation_writes_one_row_per_group(self, store):
        store.record_generation("2025-03-07", _response(("Generators", 2), ("Typing", 3)))

        with sqlite3.connect(store.db_path) as conn:
            rows = conn.execute(
                """
                SELECT session_date, knowledge_type_group, summary, knowledge_type_language,
                       quiz_json, quiz_question_count, recorded_at
                FROM knowledge_responses ORDER BY id
                """
            ).fetchall()

        assert [(r[1], r[5]) for r in rows] == [("Generators", 2), ("Typing", 3)]
        session_date, _, summary, language, quiz_json, _, recorded_at = rows[0]
        assert session_date == "2025-03-07"
        assert summary == "About Generators"
        assert language == "Python"
        assert recorded_at.endswith("+00:00")
        quiz = json.loads(quiz_json)
        assert quiz[0]["options"][0] == {"selection": "yes", "is_correct_answer": True}

    def test_empty_generation_does_not_create_database(self, store):
        store.record_generation("2025-03-07", LearningResponse())
        assert not store.db_path.exists()

    def test_first_attempt_wins(self, store):
        store.record_first_attempt("2025-03-07", "Generators", "Python", "What is yield?", True)
        store.record_first_attempt("2025-03-07", "Generators", "Python", "What is yield?", False)

        with sqlite3.connect(store.db_path) as conn:
            rows = conn.execute("SELECT first_try_correct FROM quiz_attempts").fetchall()

        assert rows == [(1,)]
        assert store.attempt_count() == 1

    def test_same_question_on_another_day_is_new(self, store):
        store.record_first_attempt("2025-03-07", "Generators", None, "What is yield?", False)
        store.record_first_attempt("2025-03-08", "Generators", None, "What is yield?", True)
        assert store.attempt_count() == 2

    def test_load_window(self, store):
        store.record_generation("2025-03-05", _response(("A", 2), ("B", 1)))
        store.record_generation("2025-03-07", _response(("C", 4)))
        store.record_generation("2025-01-01", _response(("Old", 9)))
        store.record_first_attempt("2025-03-07", "C", None, "C question 0", True)
        store.record_first_attempt("2025-03-07", "C", None, "C question 1", False)

        snapshot = store.load_window(days=3, today=date(2025, 3, 7))

        assert [d.date for d in snapshot.daily] == [
            date(2025, 3, 5),
            date(2025, 3, 6),
            date(2025, 3, 7),
        ]
        assert [d.total_questions for d in snapshot.daily] == [3, 0, 4]
        assert [d.cumulative_groups for d in snapshot.daily] == [2, 2, 3]
        assert snapshot.daily[2].first_try_correct == 1
        assert snapshot.daily[2].total_attempts == 2
        assert snapshot.total_questions == 7
        assert snapshot.total_first_try_correct == 1
        assert snapshot.total_attempts == 2
        assert snapshot.knowledge_groups == ["A", "B", "C", "Old"]

    def test_unwritable_location_raises_store_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        store = AttemptStore(blocker / "learning_history.sqlite")

        with pytest.raises(StoreError):
            store.record_first_attempt("2025-03-07", "A", None, "q", True)
