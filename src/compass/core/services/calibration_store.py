"""
Persistence for the last successful calibration timestamp.

Read once at session start for the staleness check and written whenever
calibration completes. ``JsonCalibrationStore`` keeps a single small JSON
document on disk; ``InMemoryCalibrationStore`` is used by tests and by the
demo when no file should be touched.

File format:
    {"last_calibration": "2025-07-17T09:30:00+00:00"}
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

log = logging.getLogger("compass.calibration")


class CalibrationStore:
    def load_last_calibration(self) -> Optional[datetime]:
        raise NotImplementedError

    def save_last_calibration(self, when: datetime) -> None:
        raise NotImplementedError


class InMemoryCalibrationStore(CalibrationStore):
    def __init__(self, last_calibration: Optional[datetime] = None) -> None:
        self.last_calibration = last_calibration
        self.saves = 0

    def load_last_calibration(self) -> Optional[datetime]:
        return self.last_calibration

    def save_last_calibration(self, when: datetime) -> None:
        self.last_calibration = when
        self.saves += 1


class JsonCalibrationStore(CalibrationStore):
    """Calibration timestamp stored as ISO-8601 in a JSON file."""

    KEY = "last_calibration"

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load_last_calibration(self) -> Optional[datetime]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            raw = data.get(self.KEY)
            if raw is None:
                return None
            when = datetime.fromisoformat(raw)
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            # Unreadable file is treated as "never calibrated"
            log.warning("Ignoring unreadable calibration store %s: %s", self.path, exc)
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return when

    def save_last_calibration(self, when: datetime) -> None:
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump({self.KEY: when.isoformat()}, f)
        tmp_path.replace(self.path)
        log.debug("Calibration timestamp saved to %s", self.path)
