"""Tests for the application controller."""

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest

from learnchain.app import LearnChainApp
from learnchain.config import AppConfig
from learnchain.knowledge import LearningResponse
from learnchain.quiz import QuizAction
from learnchain.store import AttemptStore
from learnchain.utils.errors import GenerationError, StoreError

NOW = datetime(2025, 3, 7, 10, 0)

PAYLOAD = {
    "response": [
        {
            "knowledge_type_group": "Pathlib",
            "summary": "Path objects",
            "knowledge_type_language": "Python",
            "quiz": [
                {
                    "question": "Which operator joins paths?",
                    "options": [{"selection": "/", "is_correct_answer": True}],
                },
                {
                    "question": "Which method reads text?",
                    "options": [{"selection": "read_text", "is_correct_answer": True}],
                },
            ],
        }
    ]
}


class StubGenerator:
    def __init__(self, response: Optional[LearningResponse] = None, error: Optional[str] = None):
        self.response = response
        self.error = error
        self.summaries: list[str] = []

    def generate(self, summary: str) -> LearningResponse:
        self.summaries.append(summary)
        if self.error:
            raise GenerationError(self.error)
        assert self.response is not None
        return self.response


class FailingStore(AttemptStore):
    def record_generation(self, session_date, response):
        raise StoreError("failed to insert knowledge response into store")

    def record_first_attempt(self, *args):
        raise StoreError("failed to insert quiz attempt into store")


def _write_codex_log(root: Path) -> Path:
    day = root / "2025" / "03" / "07"
    day.mkdir(parents=True)
    path = day / "rollout-1.jsonl"
    records = [
        {"timestamp": "t1", "payload": {"type": "function_call", "call_id": "c1", "arguments": "ls"}},
        {"timestamp": "t2", "payload": {"type": "function_call_output", "call_id": "c1", "output": "a.py"}},
    ]
    path.write_text("".join(json.dumps(r) + "\n" for r in records))
    return path


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        codex_root=tmp_path / "codex",
        claude_root=tmp_path / "claude",
        output_dir=tmp_path / "output",
    )


def _wait_for(app: LearnChainApp) -> None:
    for _ in range(500):
        if app.poll_generation():
            return
        threading.Event().wait(0.01)
    raise AssertionError("generation never finished")


def test_load_session_renders_summary(config, tmp_path):
    _write_codex_log(tmp_path / "codex")
    app = LearnChainApp(config, generator=StubGenerator())

    session = app.load_session(NOW)

    assert session.source == "Codex CLI"
    assert len(session.events) == 2
    assert app.summary is not None
    assert app.summary.content.startswith("# Session Output - 2025-03-07")
    assert app.summary.path is None
    assert not app.errors


def test_load_session_writes_artifact_when_enabled(config, tmp_path):
    _write_codex_log(tmp_path / "codex")
    config.write_output_artifacts = True
    app = LearnChainApp(config, generator=StubGenerator())

    app.load_session(NOW)

    assert app.summary.path == tmp_path / "output" / "rollout-1.md"
    assert app.summary.path.read_text() == app.summary.content


def test_generation_loads_quiz_and_records_history(config, tmp_path):
    _write_codex_log(tmp_path / "codex")
    generator = StubGenerator(LearningResponse.model_validate(PAYLOAD))
    app = LearnChainApp(config, generator=generator)
    app.load_session(NOW)

    assert app.start_generation()
    _wait_for(app)

    assert generator.summaries == [app.summary.content]
    assert app.quiz.current_group().group_name == "Pathlib"
    assert app.status == "Knowledge groups: 1 • Total quiz questions: 2"
    snapshot = app.store.load_window(days=1, today=NOW.date())
    assert snapshot.total_questions == 2
    assert snapshot.knowledge_groups == ["Pathlib"]


def test_generation_writes_json_when_enabled(config, tmp_path):
    _write_codex_log(tmp_path / "codex")
    config.write_output_artifacts = True
    app = LearnChainApp(config, generator=StubGenerator(LearningResponse.model_validate(PAYLOAD)))
    app.load_session(NOW)

    app.start_generation()
    _wait_for(app)

    saved = tmp_path / "output" / "learning-response-2025-03-07.json"
    assert saved.exists()
    assert app.status.startswith(f"Saved to {saved} • ")


def test_generation_rejected_without_events(config):
    app = LearnChainApp(config, generator=StubGenerator())
    app.load_session(NOW)

    assert not app.start_generation()
    assert "No session events available" in str(app.errors)


def test_generation_failure_is_reported(config, tmp_path):
    _write_codex_log(tmp_path / "codex")
    app = LearnChainApp(config, generator=StubGenerator(error="rate limited"))
    app.load_session(NOW)

    app.start_generation()
    _wait_for(app)

    assert app.quiz.response is None
    assert app.status == "AI generation failed"
    assert str(app.errors).endswith("AI generation failed: rate limited")


def test_store_failure_keeps_tree(config, tmp_path):
    _write_codex_log(tmp_path / "codex")
    app = LearnChainApp(
        config,
        store=FailingStore(tmp_path / "unused.sqlite"),
        generator=StubGenerator(LearningResponse.model_validate(PAYLOAD)),
    )
    app.load_session(NOW)
    app.start_generation()
    _wait_for(app)

    assert app.quiz.response is not None
    assert "Failed to record learning response" in str(app.errors)

    attempt = app.handle_quiz_action(QuizAction.SELECT)

    assert attempt is not None and attempt.correct
    assert "Failed to record quiz attempt" in str(app.errors)
    assert str(app.errors).index("learning response") < str(app.errors).index("quiz attempt")


def test_quiz_attempts_are_recorded_once(config, tmp_path):
    _write_codex_log(tmp_path / "codex")
    app = LearnChainApp(config, generator=StubGenerator(LearningResponse.model_validate(PAYLOAD)))
    app.load_session(NOW)
    app.start_generation()
    _wait_for(app)

    app.handle_quiz_action(QuizAction.SELECT)
    app.handle_quiz_action(QuizAction.NEXT_OPTION)  # absorbed as next question
    app.handle_quiz_action(QuizAction.PREVIOUS_QUESTION)
    app.handle_quiz_action(QuizAction.SELECT)

    assert app.store.attempt_count() == 1
    snapshot = app.store.load_window(days=1, today=NOW.date())
    assert snapshot.total_attempts == 1
    assert snapshot.total_first_try_correct == 1
