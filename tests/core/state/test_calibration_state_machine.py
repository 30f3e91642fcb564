"""Tests for the calibration lifecycle and staleness rules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from compass.core.models import CalibrationState, CalibrationTrigger
from compass.core.services.calibration_store import InMemoryCalibrationStore
from compass.core.state.calibration_state_machine import CalibrationStateMachine
from compass.utils.config_sections import CalibrationConfig

NOW = datetime(2025, 7, 17, 12, 0, tzinfo=timezone.utc)


def make_machine(last=None, store=None):
    store = store if store is not None else InMemoryCalibrationStore(last_calibration=last)
    machine = CalibrationStateMachine(store=store, clock=lambda: NOW.timestamp(), config=CalibrationConfig())
    return machine, store


def test_start_stop_completes_and_persists_timestamp():
    machine, store = make_machine()
    changes = []
    machine.subscribe(changes.append)

    assert machine.start()
    assert machine.stop()

    assert machine.state == CalibrationState.COMPLETED
    assert store.last_calibration == NOW
    assert [c.trigger for c in changes] == [CalibrationTrigger.USER_START, CalibrationTrigger.USER_STOP]
    assert changes[-1].previous == CalibrationState.IN_PROGRESS


def test_second_start_is_a_noop():
    machine, _ = make_machine()
    machine.start()

    assert not machine.start()
    assert machine.state == CalibrationState.IN_PROGRESS


def test_stop_outside_progress_is_ignored():
    machine, store = make_machine()

    assert not machine.stop()
    assert machine.state == CalibrationState.NOT_STARTED
    assert store.saves == 0


@pytest.mark.parametrize(
    "initial_steps",
    [[], ["start"], ["start", "stop"]],
)
def test_failure_is_reachable_from_any_state(initial_steps):
    machine, _ = make_machine()
    for step in initial_steps:
        getattr(machine, step)()

    assert machine.fail(CalibrationTrigger.SENSOR_FAILURE)
    assert machine.state == CalibrationState.FAILED
    assert not machine.fail()


def test_failed_and_completed_can_restart():
    machine, _ = make_machine()
    machine.fail()

    assert machine.start()
    assert machine.stop()
    assert machine.start()


def test_never_calibrated_is_stale_with_longer_grace():
    machine, _ = make_machine(last=None)

    assert machine.is_stale(NOW)
    assert machine.staleness_delay(NOW) == 3.0


def test_calibration_older_than_thirty_days_is_stale():
    machine, _ = make_machine(last=NOW - timedelta(days=31))

    assert machine.is_stale(NOW)
    assert machine.staleness_delay(NOW) == 2.0


@pytest.mark.parametrize("days", [0, 29, 30])
def test_recent_calibration_is_fresh(days):
    machine, _ = make_machine(last=NOW - timedelta(days=days))

    assert not machine.is_stale(NOW)
    assert machine.staleness_delay(NOW) is None


def test_naive_timestamp_is_treated_as_utc():
    naive = (NOW - timedelta(days=40)).replace(tzinfo=None)
    machine, _ = make_machine(last=naive)

    assert machine.is_stale(NOW)


def test_mark_stale_forces_failed_with_stale_trigger():
    machine, _ = make_machine(last=NOW - timedelta(days=60))
    changes = []
    machine.subscribe(changes.append)

    assert machine.mark_stale()

    assert machine.state == CalibrationState.FAILED
    assert changes[-1].trigger == CalibrationTrigger.STALE


def test_mark_stale_skipped_while_calibrating():
    machine, _ = make_machine(last=None)
    machine.start()

    assert not machine.mark_stale()
    assert machine.state == CalibrationState.IN_PROGRESS


def test_mark_stale_skipped_after_fresh_completion():
    machine, _ = make_machine(last=None)
    machine.start()
    machine.stop()

    assert not machine.mark_stale()
    assert machine.state == CalibrationState.COMPLETED


def test_store_write_failure_still_completes(caplog):
    class BrokenStore(InMemoryCalibrationStore):
        def save_last_calibration(self, when):
            raise OSError("read-only")

    machine, _ = make_machine(store=BrokenStore())
    machine.start()

    assert machine.stop()
    assert machine.state == CalibrationState.COMPLETED
    assert "Could not persist" in caplog.text


def test_listener_errors_do_not_block_transition():
    machine, _ = make_machine()

    def broken(_change):
        raise RuntimeError("listener")

    machine.subscribe(broken)

    assert machine.start()
    assert machine.state == CalibrationState.IN_PROGRESS


def test_without_store_never_calibrated():
    machine = CalibrationStateMachine(store=None, clock=lambda: NOW.timestamp())

    assert machine.last_completed() is None
    assert machine.is_stale()
