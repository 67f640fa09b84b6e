"""Tests for the fallback session loader."""

import json
from datetime import datetime
from pathlib import Path

from learnchain.config import AppConfig
from learnchain.session_loader import SessionLoader, load_source
from learnchain.sources import SourceKind, build_source

NOW = datetime(2025, 3, 7, 9, 0)


def _write_codex_day(root: Path, records: list[dict]) -> Path:
    day = root / "2025" / "03" / "07"
    day.mkdir(parents=True, exist_ok=True)
    path = day / "rollout.jsonl"
    path.write_text("".join(json.dumps(r) + "\n" for r in records))
    return path


def _write_claude_session(root: Path) -> Path:
    project = root / "proj"
    project.mkdir(parents=True, exist_ok=True)
    path = project / "session.jsonl"
    record = {
        "timestamp": "t1",
        "message": {"content": [{"type": "tool_use", "id": "t", "name": "Bash", "input": {}}]},
    }
    path.write_text(json.dumps(record) + "\n")
    return path


def _call(timestamp: str) -> dict:
    return {
        "timestamp": timestamp,
        "payload": {"type": "function_call", "call_id": "c", "arguments": "ls"},
    }


def test_load_source_reads_latest_file(tmp_path):
    log = _write_codex_day(tmp_path, [_call("t1"), _call("t2")])

    load = load_source(build_source(SourceKind.CODEX, tmp_path), NOW)

    assert load.source == "Codex CLI"
    assert load.session_date == "2025-03-07"
    assert load.latest_file == log
    assert len(load.events) == 2
    assert load.error is None
    assert load.has_results


def test_first_source_with_results_wins(tmp_path):
    codex_root = tmp_path / "codex"
    claude_root = tmp_path / "claude"
    _write_codex_day(codex_root, [_call("t1")])
    _write_claude_session(claude_root)
    loader = SessionLoader(
        [build_source(SourceKind.CODEX, codex_root), build_source(SourceKind.CLAUDE_CODE, claude_root)]
    )

    load = loader.load(NOW)

    assert load.source == "Codex CLI"
    assert load.error is None


def test_falls_back_and_keeps_skipped_errors(tmp_path):
    codex_root = tmp_path / "codex"
    claude_root = tmp_path / "claude"
    claude_log = _write_claude_session(claude_root)
    loader = SessionLoader(
        [build_source(SourceKind.CODEX, codex_root), build_source(SourceKind.CLAUDE_CODE, claude_root)]
    )

    load = loader.load(NOW)

    assert load.source == "Claude Code"
    assert load.latest_file == claude_log
    assert len(load.events) == 1
    assert load.error is not None
    assert load.error.startswith(f"Codex CLI: {codex_root / '2025' / '03' / '07'}: ")


def test_accepted_source_error_comes_first(tmp_path):
    codex_root = tmp_path / "codex"
    claude_root = tmp_path / "claude"
    claude_log = _write_claude_session(claude_root)
    with open(claude_log, "a") as f:
        f.write("not json\n")
    loader = SessionLoader(
        [build_source(SourceKind.CODEX, codex_root), build_source(SourceKind.CLAUDE_CODE, claude_root)]
    )

    load = loader.load(NOW)

    own, skipped = load.error.split(" | ")
    assert own.startswith(f"{claude_log}:#2: ")
    assert skipped.startswith("Codex CLI: ")


def test_no_results_returns_last_attempt(tmp_path):
    codex_root = tmp_path / "codex"
    claude_root = tmp_path / "claude"
    (codex_root / "2025" / "03" / "07").mkdir(parents=True)
    loader = SessionLoader(
        [build_source(SourceKind.CODEX, codex_root), build_source(SourceKind.CLAUDE_CODE, claude_root)]
    )

    load = loader.load(NOW)

    assert load.source == "Claude Code"
    assert load.latest_file is None
    assert load.events == []
    assert load.session_date == "2025-03-07"
    # Only the missing Claude root produced an error
    assert load.error is not None
    assert load.error.startswith(f"Claude Code: {claude_root}: ")
    assert " | " not in load.error


def test_no_sources(tmp_path):
    load = SessionLoader([]).load(NOW)

    assert load.source == "unknown"
    assert load.events == []
    assert load.error is None


def test_from_config_orders_sources(tmp_path):
    config = AppConfig(session_source="claude_code", claude_root=tmp_path, codex_root=tmp_path)
    kinds = [source.kind for source in SessionLoader.from_config(config).sources]
    assert kinds == [SourceKind.CLAUDE_CODE, SourceKind.CODEX]

    config = AppConfig(fallback_source=False)
    kinds = [source.kind for source in SessionLoader.from_config(config).sources]
    assert kinds == [SourceKind.CODEX]
