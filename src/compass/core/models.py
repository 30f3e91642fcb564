"""
Domain value objects for the compass pipeline.

Readings are frozen dataclasses: every sensor callback creates a new one and
it replaces the previous value downstream, it is never mutated. The state
enums are owned by their state machines; everyone else only reads them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional


def normalize_heading(heading: float) -> float:
    """Wrap any heading into [0, 360)."""
    normalized = math.fmod(heading, 360.0)
    if normalized < 0:
        normalized += 360.0
    # fmod(-1e-18, 360) + 360 rounds to 360.0
    if normalized >= 360.0:
        normalized = 0.0
    return normalized


@dataclass(frozen=True)
class HeadingReading:
    """Single heading sample from the platform compass."""
    heading: float          # Degrees in [0, 360), 0 = North, clockwise; NaN/inf kept as reported
    true_heading: float     # Relative to geographic north (negative when unavailable)
    magnetic_heading: float # Relative to magnetic north
    accuracy: float         # Degrees of uncertainty, negative means invalid
    timestamp: float        # Seconds since the epoch

    @classmethod
    def create(
        cls,
        heading: float,
        true_heading: float,
        magnetic_heading: float,
        accuracy: float,
        timestamp: float,
    ) -> "HeadingReading":
        """
        Build a reading with ``heading`` normalized into [0, 360).

        Non-finite headings (no fix yet) are kept as-is so the aggregator can
        render its fallbacks instead of a fabricated bearing.
        """
        if math.isfinite(heading):
            heading = normalize_heading(heading)
        return cls(
            heading=heading,
            true_heading=true_heading,
            magnetic_heading=magnetic_heading,
            accuracy=accuracy,
            timestamp=timestamp,
        )


@dataclass(frozen=True)
class PositionReading:
    """Single location fix."""
    latitude: float
    longitude: float
    altitude: float         # Metres
    accuracy: float         # Horizontal accuracy in metres
    timestamp: float


class CardinalDirection(Enum):
    NORTH = "N"
    NORTH_EAST = "NE"
    EAST = "E"
    SOUTH_EAST = "SE"
    SOUTH = "S"
    SOUTH_WEST = "SW"
    WEST = "W"
    NORTH_WEST = "NW"


class AccuracyTier(Enum):
    INVALID = "Invalid"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class PermissionState(Enum):
    UNDETERMINED = "undetermined"
    AUTHORIZED_WHILE_IN_USE = "authorized_while_in_use"
    AUTHORIZED_ALWAYS = "authorized_always"
    DENIED = "denied"
    RESTRICTED = "restricted"

    @property
    def is_authorized(self) -> bool:
        return self in (PermissionState.AUTHORIZED_WHILE_IN_USE, PermissionState.AUTHORIZED_ALWAYS)

    @property
    def is_blocked(self) -> bool:
        return self in (PermissionState.DENIED, PermissionState.RESTRICTED)


class CalibrationState(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class CalibrationTrigger(Enum):
    """What caused a calibration transition."""
    USER_START = "user_start"
    USER_STOP = "user_stop"
    HEADING_FAILURE = "heading_failure"
    SENSOR_FAILURE = "sensor_failure"
    STALE = "stale"


class CompassTheme(Enum):
    """Theme names exposed by settings. Palettes belong to the renderer."""
    CLASSIC = "Classic"
    MODERN = "Modern"
    MINIMAL = "Minimal"
    MILITARY = "Military"
    OCEAN = "Ocean"
    SUNSET = "Sunset"


@dataclass(frozen=True)
class ThresholdCrossingEvent:
    """A heading reached a cardinal boundary. Consumers only care that it happened."""
    boundary: float
    timestamp: float


@dataclass(frozen=True)
class CompassSnapshot:
    """Consistent view of the pipeline state observed by the UI layer."""
    heading: Optional[HeadingReading] = None
    position: Optional[PositionReading] = None
    permission_state: PermissionState = PermissionState.UNDETERMINED
    calibration_state: CalibrationState = CalibrationState.NOT_STARTED
    show_location_detail: bool = False
    needle_rotation: float = 0.0
    permission_needed: bool = False
