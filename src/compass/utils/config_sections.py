"""
Typed configuration sections for the compass pipeline.

This module provides strongly-typed configuration sections to replace
scattered getattr(Config, ...) calls with proper type hints and defaults.

Benefits:
- Type safety: IDE autocomplete and type checking
- Discoverability: All config options visible in one place
- Default values: Centralized and documented
- Better testing: Components accept a section, tests pass their own
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple


@dataclass
class AccuracyConfig:
    """Thresholds for the accuracy tier classification."""

    high_threshold: float = 5.0
    medium_threshold: float = 15.0


@dataclass
class HapticConfig:
    """Configuration for edge-triggered cardinal crossing haptics."""

    default_enabled: bool = True
    boundaries: Tuple[float, ...] = (0.0, 90.0, 180.0, 270.0)
    crossing_tolerance: float = 2.0  # Degrees either side of a boundary
    rearm_distance: float = 10.0  # Degrees away from a boundary before it can fire again


@dataclass
class CalibrationConfig:
    """Configuration for the calibration staleness check."""

    stale_after_days: int = 30
    stale_grace_seconds: float = 2.0
    never_calibrated_grace_seconds: float = 3.0
    store_path: Path = Path("calibration.json")


@dataclass
class SensorConfig:
    """Configuration hints forwarded to the platform sensor source."""

    heading_filter: float = 1.0
    desired_accuracy: str = "best"


@dataclass
class DispatcherConfig:
    """Configuration for the threaded consumer context."""

    queue_maxsize: int = 256
    join_timeout: float = 1.0


@dataclass
class SimulationConfig:
    """Configuration for the simulated sensor platform."""

    rate_hz: float = 10.0
    sweep_deg_per_second: float = 15.0
    noise_deg: float = 0.4
    heading_accuracy: float = 8.0
    latitude: float = 0.0
    longitude: float = 0.0
    altitude: float = 0.0
    position_every_n: int = 10
    seed: int = 7


def load_accuracy_config() -> AccuracyConfig:
    """
    Load accuracy tier configuration from Config with fallback defaults.

    Returns:
        AccuracyConfig with values from Config or defaults
    """
    from compass.utils.config import Config

    return AccuracyConfig(
        high_threshold=getattr(Config, "ACCURACY_HIGH_THRESHOLD", 5.0),
        medium_threshold=getattr(Config, "ACCURACY_MEDIUM_THRESHOLD", 15.0),
    )


def load_haptic_config() -> HapticConfig:
    """
    Load haptic crossing configuration from Config with fallback defaults.

    Returns:
        HapticConfig with values from Config or defaults
    """
    from compass.utils.config import Config

    return HapticConfig(
        default_enabled=getattr(Config, "HAPTICS_DEFAULT_ENABLED", True),
        boundaries=tuple(getattr(Config, "CARDINAL_BOUNDARIES_DEG", (0.0, 90.0, 180.0, 270.0))),
        crossing_tolerance=getattr(Config, "HAPTIC_CROSSING_TOLERANCE_DEG", 2.0),
        rearm_distance=getattr(Config, "HAPTIC_REARM_DISTANCE_DEG", 10.0),
    )


def load_calibration_config() -> CalibrationConfig:
    """
    Load calibration staleness configuration from Config with fallback defaults.

    Returns:
        CalibrationConfig with values from Config or defaults
    """
    from compass.utils.config import Config

    return CalibrationConfig(
        stale_after_days=getattr(Config, "CALIBRATION_STALE_AFTER_DAYS", 30),
        stale_grace_seconds=getattr(Config, "CALIBRATION_STALE_GRACE_SECONDS", 2.0),
        never_calibrated_grace_seconds=getattr(Config, "CALIBRATION_NEVER_GRACE_SECONDS", 3.0),
        store_path=Path(getattr(Config, "CALIBRATION_STORE_PATH", "calibration.json")),
    )


def load_sensor_config() -> SensorConfig:
    """
    Load sensor adapter configuration from Config with fallback defaults.

    Returns:
        SensorConfig with values from Config or defaults
    """
    from compass.utils.config import Config

    return SensorConfig(
        heading_filter=getattr(Config, "HEADING_FILTER_DEG", 1.0),
        desired_accuracy=getattr(Config, "DESIRED_ACCURACY", "best"),
    )


def load_dispatcher_config() -> DispatcherConfig:
    """
    Load dispatcher configuration from Config with fallback defaults.

    Returns:
        DispatcherConfig with values from Config or defaults
    """
    from compass.utils.config import Config

    return DispatcherConfig(
        queue_maxsize=getattr(Config, "DISPATCHER_QUEUE_MAXSIZE", 256),
        join_timeout=getattr(Config, "DISPATCHER_JOIN_TIMEOUT", 1.0),
    )


def load_simulation_config() -> SimulationConfig:
    """
    Load simulated platform configuration from Config with fallback defaults.

    Returns:
        SimulationConfig with values from Config or defaults
    """
    from compass.utils.config import Config

    return SimulationConfig(
        rate_hz=getattr(Config, "SIM_HEADING_RATE_HZ", 10.0),
        sweep_deg_per_second=getattr(Config, "SIM_SWEEP_DEG_PER_SECOND", 15.0),
        noise_deg=getattr(Config, "SIM_HEADING_NOISE_DEG", 0.4),
        heading_accuracy=getattr(Config, "SIM_HEADING_ACCURACY", 8.0),
        latitude=getattr(Config, "SIM_LATITUDE", 0.0),
        longitude=getattr(Config, "SIM_LONGITUDE", 0.0),
        altitude=getattr(Config, "SIM_ALTITUDE", 0.0),
        position_every_n=getattr(Config, "SIM_POSITION_EVERY_N", 10),
        seed=getattr(Config, "SIM_SEED", 7),
    )
