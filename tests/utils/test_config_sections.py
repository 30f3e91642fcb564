"""Tests for the typed configuration loaders."""

from __future__ import annotations

from pathlib import Path

import pytest

from compass.utils.config_sections import (
    load_accuracy_config,
    load_calibration_config,
    load_dispatcher_config,
    load_haptic_config,
    load_sensor_config,
    load_simulation_config,
)


def test_haptic_config_reads_config(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("compass.utils.config.Config.HAPTIC_CROSSING_TOLERANCE_DEG", 3.5)
    monkeypatch.setattr("compass.utils.config.Config.CARDINAL_BOUNDARIES_DEG", [0.0, 180.0])
    monkeypatch.setattr("compass.utils.config.Config.HAPTICS_DEFAULT_ENABLED", False)

    config = load_haptic_config()

    assert config.crossing_tolerance == 3.5
    assert config.boundaries == (0.0, 180.0)
    assert config.default_enabled is False
    assert config.rearm_distance == 10.0


def test_calibration_config_defaults():
    config = load_calibration_config()

    assert config.stale_after_days == 30
    assert config.stale_grace_seconds == 2.0
    assert config.never_calibrated_grace_seconds == 3.0
    assert isinstance(config.store_path, Path)


def test_missing_attribute_falls_back_to_default(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delattr("compass.utils.config.Config.ACCURACY_MEDIUM_THRESHOLD")

    config = load_accuracy_config()

    assert config.high_threshold == 5.0
    assert config.medium_threshold == 15.0


def test_remaining_sections_load():
    assert load_sensor_config().desired_accuracy == "best"
    assert load_dispatcher_config().queue_maxsize == 256
    simulation = load_simulation_config()
    assert simulation.rate_hz == 10.0
    assert simulation.position_every_n == 10
