"""Tests for the simulated sensor platform."""

from __future__ import annotations

import threading
from unittest.mock import Mock

import pytest

from compass.core.models import PermissionState
from compass.core.sensors.errors import PlatformError, PlatformErrorCode
from compass.core.sensors.mock_platform import SimulatedSensorPlatform
from compass.utils.config_sections import SimulationConfig


@pytest.fixture()
def config() -> SimulationConfig:
    return SimulationConfig(
        rate_hz=10.0,
        sweep_deg_per_second=20.0,
        noise_deg=0.0,
        heading_accuracy=6.0,
        latitude=40.0,
        longitude=-3.0,
        altitude=650.0,
        position_every_n=5,
        seed=1,
    )


@pytest.fixture()
def platform(config) -> SimulatedSensorPlatform:
    sim = SimulatedSensorPlatform(config=config, clock=lambda: 500.0)
    sim.set_delegate(Mock())
    return sim


def test_nothing_emitted_until_updates_started(platform):
    platform.run_for(1.0)

    platform.delegate.on_heading.assert_not_called()
    platform.delegate.on_locations.assert_not_called()


def test_heading_sweeps_at_configured_speed(platform):
    platform.start_updating_heading()

    steps = platform.run_for(1.0)

    assert steps == 10
    samples = [c.args[0] for c in platform.delegate.on_heading.call_args_list]
    assert len(samples) == 10
    assert samples[0].magnetic_heading == pytest.approx(2.0)
    assert samples[-1].magnetic_heading == pytest.approx(20.0)
    assert samples[0].heading_accuracy == 6.0
    assert samples[0].timestamp == 500.0


def test_location_batches_every_n_steps(platform, config):
    platform.start_updating_location()

    platform.run_for(1.0)

    batches = [c.args[0] for c in platform.delegate.on_locations.call_args_list]
    assert len(batches) == 2
    assert all(len(batch) == 2 for batch in batches)
    assert batches[0][-1].latitude == pytest.approx(config.latitude, abs=1e-3)
    assert batches[0][-1].horizontal_accuracy == 5.0


def test_stop_updates_silences_stream(platform):
    platform.start_updating_heading()
    platform.step()
    platform.stop_updating_heading()
    platform.step()

    assert platform.delegate.on_heading.call_count == 1


def test_first_request_answers_with_grant(config):
    sim = SimulatedSensorPlatform(config=config, grant=PermissionState.DENIED)
    sim.set_delegate(Mock())

    sim.request_when_in_use_authorization()
    sim.request_when_in_use_authorization()

    assert sim.authorization_requests == 2
    assert sim.authorization_status == PermissionState.DENIED
    sim.delegate.on_authorization_changed.assert_called_once_with(PermissionState.DENIED)


def test_inject_failure_reports_platform_error(platform):
    platform.inject_failure(PlatformErrorCode.HEADING_FAILURE)

    error = platform.delegate.on_failure.call_args.args[0]
    assert isinstance(error, PlatformError)
    assert error.code == PlatformErrorCode.HEADING_FAILURE


def test_configure_and_dismiss_are_recorded(platform):
    platform.configure(1.0, "best")
    platform.dismiss_heading_calibration_display()

    assert platform.heading_filter == 1.0
    assert platform.desired_accuracy == "best"
    assert platform.calibration_dismissals == 1


def test_stream_emits_from_background_thread():
    sim = SimulatedSensorPlatform(config=SimulationConfig(rate_hz=100.0, noise_deg=0.0))
    received = threading.Event()
    threads = []

    class Delegate:
        def on_heading(self, sample):
            threads.append(threading.current_thread().name)
            received.set()

        def on_locations(self, samples):
            pass

    sim.set_delegate(Delegate())
    sim.start_updating_heading()
    sim.start_stream()
    try:
        assert received.wait(timeout=2.0)
    finally:
        sim.stop_stream()

    assert not sim.streaming
    assert threads[0] == "SimulatedSensorPlatform"
