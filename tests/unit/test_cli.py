from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from milestone_ledger import main
from milestone_ledger.config import get_settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def file_backend(tmp_path: Path, monkeypatch) -> Path:
    """Point the CLI at a throwaway JSON state file."""
    state_path = tmp_path / "ledger.json"
    monkeypatch.setenv("LEDGER_BACKEND", "file")
    monkeypatch.setenv("LEDGER_STATE_PATH", str(state_path))
    monkeypatch.setenv("LEDGER_GOAL_INDEX", "membership")
    monkeypatch.setattr(main, "configure_logging", lambda **kwargs: None)
    get_settings.cache_clear()
    yield state_path
    get_settings.cache_clear()


def _invoke(*args: str):
    return runner.invoke(main.app, list(args))


def test_info_reports_backend(file_backend: Path) -> None:
    result = _invoke("info")

    assert result.exit_code == 0
    assert "backend=file" in result.output
    assert "index=membership" in result.output


def test_create_update_and_aggregate_round_trip(file_backend: Path) -> None:
    created = _invoke(
        "create", "--caller", "alice", "--title", "Draft", "--description", "Write it",
        "--target-date", "2000", "--goal", "7", "--now", "1000",
    )
    assert created.exit_code == 0, created.output
    assert "Created milestone 1 for alice" in created.output
    assert file_backend.exists()

    updated = _invoke("update", "1", "--caller", "alice", "--progress", "40", "--status", "in_progress", "--now", "1001")
    assert updated.exit_code == 0, updated.output
    assert "Updated milestone 1 for alice at 1001" in updated.output

    count = _invoke("count", "alice")
    assert count.stdout.strip() == "1"

    progress = _invoke("progress", "alice", "7", "--json")
    assert progress.exit_code == 0
    summary = json.loads(progress.stdout)
    assert summary["average_progress"] == 40
    assert summary["member_count"] == 1

    shown = _invoke("show", "alice", "--json")
    milestones = json.loads(shown.stdout)
    assert [m["record_id"] for m in milestones] == [1]
    assert milestones[0]["status"] == 1


def test_clear_goal_removes_membership(file_backend: Path) -> None:
    _invoke("create", "-c", "alice", "-t", "A", "-d", "B", "--target-date", "50", "-g", "3", "--now", "10")
    _invoke("update", "1", "-c", "alice", "--progress", "90", "--now", "11")

    cleared = _invoke("update", "1", "-c", "alice", "--clear-goal", "--now", "12")
    assert cleared.exit_code == 0, cleared.output

    progress = json.loads(_invoke("progress", "alice", "3", "--json").stdout)
    assert progress["member_count"] == 0
    assert progress["average_progress"] == 0


def test_goal_and_clear_goal_are_exclusive() -> None:
    result = _invoke("update", "1", "-c", "alice", "--goal", "2", "--clear-goal")

    assert result.exit_code == 2


def test_invalid_create_exits_with_error_code(file_backend: Path) -> None:
    result = _invoke(
        "create", "-c", "alice", "-t", "Late", "-d", "Past", "--target-date", "5", "--now", "10",
    )

    assert result.exit_code == 1
    assert "INVALID_INPUT" in result.output
    assert not file_backend.exists()


def test_update_missing_record_reports_not_found() -> None:
    result = _invoke("update", "9", "-c", "alice", "--title", "X", "--now", "10")

    assert result.exit_code == 1
    assert "NOT_FOUND" in result.output


def test_show_missing_record_fails() -> None:
    result = _invoke("show", "alice", "3")

    assert result.exit_code == 1


def test_bench_emits_json_per_design() -> None:
    result = _invoke("bench", "--records", "8", "--goals", "2", "--json")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert sorted(r["index"] for r in payload) == ["derived", "membership"]


def test_bench_rejects_unknown_design() -> None:
    result = _invoke("bench", "--index", "btree")

    assert result.exit_code == 2


@pytest.mark.parametrize("command", [["count", "alice"], ["show", "alice"], ["show", "alice", "1"]])
def test_read_commands_report_metering_errors(monkeypatch, command) -> None:
    monkeypatch.setenv("LEDGER_METER_BUDGET", "1")
    monkeypatch.setenv("LEDGER_METER_READ_COST", "5")
    get_settings.cache_clear()

    result = _invoke(*command)

    assert result.exit_code == 1
    assert "METERING_EXCEEDED" in result.output
    assert isinstance(result.exception, SystemExit)
