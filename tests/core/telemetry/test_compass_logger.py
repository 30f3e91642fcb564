"""Tests for the per-session compass log files."""

from __future__ import annotations

import logging

import pytest

from compass.core.telemetry.loggers.compass_logger import CHANNELS, CompassLogger, get_compass_logger


@pytest.fixture()
def compass_logger(tmp_path):
    instance = get_compass_logger(session_dir=tmp_path / "session", console_level="ERROR")
    yield instance
    instance.close()


def test_creates_one_file_per_channel(compass_logger, tmp_path):
    for filename in CHANNELS.values():
        assert (tmp_path / "session" / filename).exists()


def test_named_loggers_write_to_their_file(compass_logger, tmp_path):
    logging.getLogger("compass.calibration").info("Calibration in_progress -> completed")
    compass_logger.haptics.debug("Haptic pulse: light")

    calibration_log = (tmp_path / "session" / "calibration.log").read_text()
    haptics_log = (tmp_path / "session" / "haptics.log").read_text()
    assert "Calibration in_progress -> completed" in calibration_log
    assert "[INFO]" in calibration_log
    assert "Haptic pulse: light" in haptics_log
    assert "Haptic pulse" not in calibration_log


def test_singleton_until_closed(compass_logger, tmp_path):
    assert get_compass_logger() is compass_logger
    assert CompassLogger() is compass_logger


def test_close_restores_propagation(tmp_path):
    instance = get_compass_logger(session_dir=tmp_path / "other")

    instance.close()

    logger = logging.getLogger("compass.sensors")
    assert logger.propagate
    assert logger.handlers == []
    assert get_compass_logger(session_dir=tmp_path / "again") is not instance
    get_compass_logger().close()
