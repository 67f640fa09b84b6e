"""Tests for markdown session summaries."""

from pathlib import Path

from learnchain.events import EventCategory, SessionEvent
from learnchain.inclusion import InclusionRules
from learnchain.summary import EMPTY_NOTE, render_summary, write_summary


def _call(ts: str, arguments: str, texts=()) -> SessionEvent:
    return SessionEvent(ts, EventCategory.FUNCTION_CALL, arguments=arguments, content_texts=texts)


def _output(ts: str, output: str) -> SessionEvent:
    return SessionEvent(ts, EventCategory.FUNCTION_CALL_OUTPUT, output=output)


def test_render_summary_sections():
    events = [
        _call("t1", '{"command":["ls"]}', texts=("listing files",)),
        _output("t2", "a.py\nb.py"),
        SessionEvent("t3", EventCategory.TOOL_USE, payload_type="tool_use:Edit", arguments='{"file":"a.py"}'),
    ]

    document = render_summary(events, "2025-03-07", InclusionRules())

    assert document == (
        "# Session Output - 2025-03-07\n\n"
        "## t1 - function_call\n\n"
        "listing files\n\n"
        'Arguments:\n{"command":["ls"]}\n\n'
        "## t2 - function_call_output\n\n"
        "Output:\na.py\nb.py\n\n"
        "## t3 - tool_use:Edit\n\n"
        'Arguments:\n{"file":"a.py"}\n\n'
    )


def test_function_call_without_arguments_shows_output():
    event = SessionEvent("t1", EventCategory.FUNCTION_CALL, arguments="  ", output="done")
    document = render_summary([event], "2025-03-07", InclusionRules())
    assert "Output:\ndone" in document
    assert "Arguments:" not in document


def test_empty_summary_note():
    document = render_summary([], "2025-03-07", InclusionRules())
    assert document == f"# Session Output - 2025-03-07\n\n{EMPTY_NOTE}\n"


def test_truncation_note():
    events = [_call(f"t{i}", "ls") for i in range(4)]

    document = render_summary(events, "2025-03-07", InclusionRules(max_events=2))

    assert "## t0" not in document
    assert "## t3" in document
    assert document.endswith("_Limited to the 2 most recent matching events._\n")


def test_write_summary_uses_log_stem(tmp_path):
    artifact = write_summary(
        [_call("t1", "ls")],
        "2025-03-07",
        InclusionRules(),
        tmp_path / "out",
        latest_file=Path("/logs/rollout-abc.jsonl"),
        persist=True,
    )

    assert artifact.error is None
    assert artifact.path == tmp_path / "out" / "rollout-abc.md"
    assert artifact.path.read_text() == artifact.content


def test_write_summary_default_name(tmp_path):
    artifact = write_summary([], "2025-03-07", InclusionRules(), tmp_path, persist=True)
    assert artifact.path == tmp_path / "session-2025-03-07.md"


def test_write_summary_not_persisted(tmp_path):
    artifact = write_summary([], "2025-03-07", InclusionRules(), tmp_path / "out")
    assert artifact.path is None
    assert not (tmp_path / "out").exists()


def test_write_failure_is_advisory(tmp_path):
    blocker = tmp_path / "out"
    blocker.write_text("file, not a directory")

    artifact = write_summary([], "2025-03-07", InclusionRules(), blocker, persist=True)

    assert artifact.path is None
    assert artifact.content.startswith("# Session Output")
    assert artifact.error is not None
