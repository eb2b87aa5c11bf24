from __future__ import annotations

import signal

import pytest
from click.testing import CliRunner

import main
from services.scheduler import CycleScheduler


@pytest.fixture
def runner(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("STATS_FILE", str(tmp_path / "stats.json"))
    monkeypatch.setenv("DB_PATH", str(tmp_path / "replies.db"))
    monkeypatch.setenv("GOOGLE_CLIENT_SECRETS", str(tmp_path / "credentials.json"))
    monkeypatch.setenv("GOOGLE_TOKEN_PATH", str(tmp_path / "token.json"))
    return CliRunner()


def _invoke(runner, tmp_path, *args):
    return runner.invoke(main.cli, ["--env-file", str(tmp_path / "missing.env"), *args])


def test_stats_without_history(runner, tmp_path):
    result = _invoke(runner, tmp_path, "stats")

    assert result.exit_code == 0
    assert "No stats recorded yet." in result.output


def test_run_once_prints_outcomes_and_records_stats(runner, tmp_path, monkeypatch, mailbox, make_cycle):
    mailbox.add_message("A", {"From": "alice@example.com", "Subject": "Hello"})
    monkeypatch.setattr(main, "build_cycle", lambda app: make_cycle())

    result = _invoke(runner, tmp_path, "run-once")

    assert result.exit_code == 0, result.output
    assert "replied" in result.output
    assert mailbox.recipients() == ["alice@example.com"]

    stats = _invoke(runner, tmp_path, "stats")
    assert "Replied" in stats.output


def test_run_once_exits_non_zero_when_aborted(runner, tmp_path, monkeypatch, mailbox, make_cycle):
    mailbox.fail_create = RuntimeError("label service down")
    monkeypatch.setattr(main, "build_cycle", lambda app: make_cycle())

    result = _invoke(runner, tmp_path, "run-once")

    assert result.exit_code == 1
    assert "label service down" in result.output


def test_run_once_reports_missing_client_secrets(runner, tmp_path):
    result = _invoke(runner, tmp_path, "run-once")

    assert result.exit_code == 1
    assert "Missing OAuth client secrets" in result.output


def test_schedule_routes_ctrl_c_to_graceful_stop(runner, tmp_path, monkeypatch, make_cycle):
    cycle = make_cycle()
    handlers = {}
    monkeypatch.setattr(main, "build_cycle", lambda app: cycle)
    monkeypatch.setattr(main.signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))

    def interrupt(self, poll_seconds=1.0):
        handlers[signal.SIGINT](signal.SIGINT, None)

    monkeypatch.setattr(CycleScheduler, "run_forever", interrupt)

    result = _invoke(runner, tmp_path, "schedule", "--wait-first")

    assert result.exit_code == 0, result.output
    assert set(handlers) == {signal.SIGINT, signal.SIGTERM}
    assert cycle.stop_event.is_set()
    assert "Scheduler stopped." in result.output


def test_schedule_interrupt_during_first_cycle_exits_cleanly(runner, tmp_path, monkeypatch, make_cycle):
    monkeypatch.setattr(main, "build_cycle", lambda app: make_cycle())
    monkeypatch.setattr(main.signal, "signal", lambda signum, handler: None)

    def interrupted(self):
        raise KeyboardInterrupt

    monkeypatch.setattr(CycleScheduler, "run_now", interrupted)

    result = _invoke(runner, tmp_path, "schedule", "--run-first")

    assert result.exit_code == 0, result.output
    assert "Scheduler stopped." in result.output
