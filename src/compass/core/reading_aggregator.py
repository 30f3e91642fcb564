"""
Pure derivations over heading and position readings.

Nothing in this module keeps state. The orchestrator owns the edge-triggering
latch for haptics; these functions only answer questions about one reading
(or a pair of consecutive headings).

Fallbacks for "no reading yet" live here as well, so the UI and the
orchestrator render the same placeholders.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional

from compass.core.models import (
    AccuracyTier,
    CardinalDirection,
    HeadingReading,
    PositionReading,
    normalize_heading,
)
from compass.utils.config_sections import AccuracyConfig, HapticConfig

NO_HEADING_TEXT = "---°"
NO_CARDINAL_TEXT = "---"
NO_COORDINATES_TEXT = "Unknown Location"
NO_ALTITUDE_TEXT = "Unknown Altitude"
NO_ACCURACY_TEXT = "Unknown"

# Sector order starting at North, each 45° wide and centred on its point
_SECTORS = (
    CardinalDirection.NORTH,
    CardinalDirection.NORTH_EAST,
    CardinalDirection.EAST,
    CardinalDirection.SOUTH_EAST,
    CardinalDirection.SOUTH,
    CardinalDirection.SOUTH_WEST,
    CardinalDirection.WEST,
    CardinalDirection.NORTH_WEST,
)

_DEFAULT_ACCURACY = AccuracyConfig()
_DEFAULT_HAPTIC = HapticConfig()


def cardinal_direction(heading: float) -> CardinalDirection:
    """
    Map a heading to one of the 8 compass points.

    North covers [337.5, 360) and [0, 22.5). NaN and infinities fall back to
    North.
    """
    if not math.isfinite(heading):
        return CardinalDirection.NORTH
    shifted = normalize_heading(heading + 22.5)
    index = int(shifted // 45.0)
    if not 0 <= index < len(_SECTORS):
        return CardinalDirection.NORTH
    return _SECTORS[index]


def accuracy_tier(accuracy: float, config: Optional[AccuracyConfig] = None) -> AccuracyTier:
    """Classify a heading accuracy estimate. Negative values are invalid."""
    config = config or _DEFAULT_ACCURACY
    if accuracy < 0:
        return AccuracyTier.INVALID
    if accuracy < config.high_threshold:
        return AccuracyTier.HIGH
    if accuracy < config.medium_threshold:
        return AccuracyTier.MEDIUM
    return AccuracyTier.LOW


def angular_distance(a: float, b: float) -> float:
    """Smallest unsigned angle between two headings, in [0, 180]."""
    diff = abs(normalize_heading(a) - normalize_heading(b))
    return min(diff, 360.0 - diff)


def threshold_crossing(
    heading: float,
    tolerance: Optional[float] = None,
    boundaries: Optional[Iterable[float]] = None,
) -> bool:
    """True when ``heading`` lies within ``tolerance`` of a cardinal boundary."""
    return nearest_boundary_within(heading, tolerance, boundaries) is not None


def nearest_boundary_within(
    heading: float,
    tolerance: Optional[float] = None,
    boundaries: Optional[Iterable[float]] = None,
) -> Optional[float]:
    """Boundary that ``heading`` is within ``tolerance`` of, or None."""
    if not math.isfinite(heading):
        return None
    tolerance = _DEFAULT_HAPTIC.crossing_tolerance if tolerance is None else tolerance
    boundaries = _DEFAULT_HAPTIC.boundaries if boundaries is None else boundaries
    for boundary in boundaries:
        if angular_distance(heading, boundary) < tolerance:
            return boundary
    return None


def crossed_boundaries(
    previous: float,
    current: float,
    boundaries: Optional[Iterable[float]] = None,
) -> List[float]:
    """
    Boundaries lying on the shortest arc from ``previous`` to ``current``.

    Both endpoints are inclusive, so a reading that lands exactly on a
    boundary counts as crossing it.
    """
    if not (math.isfinite(previous) and math.isfinite(current)):
        return []
    boundaries = _DEFAULT_HAPTIC.boundaries if boundaries is None else boundaries

    start = normalize_heading(previous)
    delta = normalize_heading(current) - start
    # Shortest signed arc in (-180, 180]
    if delta > 180.0:
        delta -= 360.0
    elif delta <= -180.0:
        delta += 360.0
    if delta == 0.0:
        return []

    crossed = []
    for boundary in boundaries:
        offset = normalize_heading(boundary - start)
        if delta > 0:
            hit = offset <= delta
        else:
            hit = offset == 0.0 or offset >= 360.0 + delta
        if hit:
            crossed.append(boundary)
    return crossed


def needle_rotation(heading: float) -> float:
    """Rotation target for the dial: it counter-rotates against the heading."""
    return -heading


# ----------------------------------------------------------------------
# Presentation strings
# ----------------------------------------------------------------------

def format_heading(reading: Optional[HeadingReading]) -> str:
    if reading is None or not math.isfinite(reading.heading):
        return NO_HEADING_TEXT
    return f"{reading.heading:.0f}°"


def cardinal_label(reading: Optional[HeadingReading]) -> str:
    if reading is None:
        return NO_CARDINAL_TEXT
    return cardinal_direction(reading.heading).value


def accuracy_label(reading: Optional[HeadingReading], config: Optional[AccuracyConfig] = None) -> str:
    if reading is None:
        return NO_ACCURACY_TEXT
    return accuracy_tier(reading.accuracy, config).value


def format_coordinates(position: Optional[PositionReading]) -> str:
    if position is None:
        return NO_COORDINATES_TEXT
    return f"{position.latitude:.6f}, {position.longitude:.6f}"


def format_altitude(position: Optional[PositionReading]) -> str:
    if position is None:
        return NO_ALTITUDE_TEXT
    return f"{position.altitude:.1f} m"
