"""End-to-end runs of the demo entry point in replay mode."""

from __future__ import annotations

import signal
from types import SimpleNamespace

import pytest

from compass import main as demo

ShutdownRequest = demo.ShutdownRequest


@pytest.fixture(autouse=True)
def no_signal_handler(monkeypatch):
    monkeypatch.setattr(
        demo,
        "ShutdownRequest",
        lambda: SimpleNamespace(should_stop=False, reason=None, restore=lambda: None),
    )


def run(tmp_path, *extra):
    return demo.main(["--seconds", "6", "--log-dir", str(tmp_path / "logs"), "--console-level", "ERROR", *extra])


def test_replay_with_calibration_completes(tmp_path, capsys):
    assert run(tmp_path, "--calibrate") == 0

    out = capsys.readouterr().out
    assert "COMPASS SESSION SUMMARY" in out
    assert "Calibration started" in out
    assert "Calibration completed" in out
    assert "Final calibration state: completed" in out
    assert (tmp_path / "logs" / "calibration.log").exists()


def test_replay_never_calibrated_prompts(tmp_path, capsys):
    assert run(tmp_path) == 0

    out = capsys.readouterr().out
    assert "Final calibration state: failed" in out


def test_replay_fresh_calibration_stays_not_started(tmp_path, capsys):
    assert run(tmp_path, "--last-calibration-days", "3") == 0

    out = capsys.readouterr().out
    assert "Final calibration state: not_started" in out


def test_replay_denied_reports_permission_needed(tmp_path, capsys):
    assert run(tmp_path, "--deny") == 0

    out = capsys.readouterr().out
    assert "Location access needed" in out
    assert "Headings published: 0" in out


def test_replay_persists_calibration_to_json_store(tmp_path):
    store = tmp_path / "calibration.json"

    assert run(tmp_path, "--calibrate", "--store", str(store)) == 0

    assert store.exists()


def test_invalid_rate_is_rejected(tmp_path, capsys):
    assert demo.main(["--rate", "0"]) == 2
    assert "--rate must be positive" in capsys.readouterr().out


def test_shutdown_request_stops_loop_and_restores_handlers():
    previous = signal.getsignal(signal.SIGINT)
    shutdown = ShutdownRequest(signals=(signal.SIGINT,))
    try:
        assert signal.getsignal(signal.SIGINT) == shutdown._signal_handler

        shutdown._signal_handler(signal.SIGINT, None)

        assert shutdown.should_stop
        assert shutdown.reason == "SIGINT"
    finally:
        shutdown.restore()

    assert signal.getsignal(signal.SIGINT) == previous


def test_interrupted_session_still_summarizes_and_restores(tmp_path, capsys, monkeypatch):
    restored = []
    monkeypatch.setattr(
        demo,
        "ShutdownRequest",
        lambda: SimpleNamespace(should_stop=True, reason="SIGTERM", restore=lambda: restored.append(True)),
    )

    assert run(tmp_path) == 0

    out = capsys.readouterr().out
    assert "COMPASS SESSION SUMMARY" in out
    assert "Session ended early by SIGTERM" in out
    assert restored == [True]
