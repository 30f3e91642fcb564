"""Tests for calibration timestamp persistence."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from compass.core.services.calibration_store import InMemoryCalibrationStore, JsonCalibrationStore


def test_json_store_round_trips_aware_timestamp(tmp_path):
    store = JsonCalibrationStore(tmp_path / "nested" / "calibration.json")
    when = datetime(2025, 7, 1, 8, 30, tzinfo=timezone.utc)

    store.save_last_calibration(when)

    assert store.load_last_calibration() == when
    payload = json.loads((tmp_path / "nested" / "calibration.json").read_text())
    assert payload == {"last_calibration": "2025-07-01T08:30:00+00:00"}
    assert not (tmp_path / "nested" / "calibration.json.tmp").exists()


def test_json_store_missing_file_means_never_calibrated(tmp_path):
    store = JsonCalibrationStore(tmp_path / "absent.json")

    assert store.load_last_calibration() is None


def test_json_store_ignores_corrupt_file(tmp_path, caplog):
    path = tmp_path / "calibration.json"
    path.write_text("{not json")

    assert JsonCalibrationStore(path).load_last_calibration() is None
    assert "unreadable" in caplog.text


def test_json_store_ignores_wrong_shape(tmp_path):
    path = tmp_path / "calibration.json"
    path.write_text(json.dumps(["2025-07-01"]))

    assert JsonCalibrationStore(path).load_last_calibration() is None


def test_json_store_naive_values_become_utc(tmp_path):
    path = tmp_path / "calibration.json"
    path.write_text(json.dumps({"last_calibration": "2025-07-01T08:30:00"}))

    loaded = JsonCalibrationStore(path).load_last_calibration()

    assert loaded == datetime(2025, 7, 1, 8, 30, tzinfo=timezone.utc)


def test_in_memory_store_counts_saves():
    store = InMemoryCalibrationStore()
    when = datetime(2025, 1, 1, tzinfo=timezone.utc)

    store.save_last_calibration(when)

    assert store.load_last_calibration() == when
    assert store.saves == 1
