"""
Centralized configuration for the compass pipeline.

This module provides all configuration constants and runtime settings for:
- Sensor adapter (heading filter, desired accuracy)
- Reading aggregation (accuracy tiers, cardinal crossing tolerance)
- Haptic edge-triggering (tolerance band and re-arm distance)
- Calibration lifecycle (staleness window and startup grace delays)
- Persistence and logging paths
- Simulated sensor platform used for development without hardware

The Config class contains all constants as class attributes, making them
accessible throughout the application without instantiation.

Usage:
    from compass.utils.config import Config

    tolerance = Config.HAPTIC_CROSSING_TOLERANCE_DEG
    if Config.HAPTICS_DEFAULT_ENABLED:
        ...
"""

import os
from pathlib import Path


def _env_path(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    return Path(value).expanduser() if value else default


class Config:
    """System configuration constants for the compass pipeline."""

    # ==========================================================================
    # SENSOR ADAPTER
    # ==========================================================================

    HEADING_FILTER_DEG = 1.0            # Minimum heading change reported by the platform
    DESIRED_ACCURACY = "best"           # Platform location accuracy hint

    # ==========================================================================
    # READING AGGREGATION
    # ==========================================================================

    ACCURACY_HIGH_THRESHOLD = 5.0       # accuracy < 5  -> HIGH
    ACCURACY_MEDIUM_THRESHOLD = 15.0    # accuracy < 15 -> MEDIUM, else LOW
    CARDINAL_BOUNDARIES_DEG = (0.0, 90.0, 180.0, 270.0)

    # ==========================================================================
    # HAPTICS: threshold crossing
    # ==========================================================================

    HAPTICS_DEFAULT_ENABLED = True
    HAPTIC_CROSSING_TOLERANCE_DEG = 2.0  # Within 2° of a boundary counts as a crossing
    HAPTIC_REARM_DISTANCE_DEG = 10.0     # Must move this far away before firing again

    # ==========================================================================
    # CALIBRATION
    # ==========================================================================

    CALIBRATION_STALE_AFTER_DAYS = 30
    CALIBRATION_STALE_GRACE_SECONDS = 2.0       # Calibrated before, but stale
    CALIBRATION_NEVER_GRACE_SECONDS = 3.0       # Never calibrated on this device
    CALIBRATION_STORE_PATH = _env_path(
        "COMPASS_CALIBRATION_STORE",
        Path.home() / ".compass" / "calibration.json",
    )

    # ==========================================================================
    # LOGGING
    # ==========================================================================

    LOG_DIR = _env_path("COMPASS_LOG_DIR", Path("logs"))
    LOG_CONSOLE_LEVEL = "WARNING"

    # ==========================================================================
    # DISPATCHER
    # ==========================================================================

    DISPATCHER_QUEUE_MAXSIZE = 256
    DISPATCHER_JOIN_TIMEOUT = 1.0

    # ==========================================================================
    # SIMULATED PLATFORM (development without hardware)
    # ==========================================================================

    SIM_HEADING_RATE_HZ = 10.0
    SIM_SWEEP_DEG_PER_SECOND = 15.0
    SIM_HEADING_NOISE_DEG = 0.4
    SIM_HEADING_ACCURACY = 8.0
    SIM_LATITUDE = 38.3452
    SIM_LONGITUDE = -0.4810
    SIM_ALTITUDE = 12.0
    SIM_POSITION_EVERY_N = 10           # One position batch every N heading updates
    SIM_SEED = 7
