"""
Dedicated per-session log files for the compass pipeline.

This module provides a singleton that attaches file handlers to the
pipeline's named loggers so each concern lands in its own file for easier
analysis and troubleshooting.

Features:
- Singleton pattern (one instance per session)
- Separate log files for sensors, permission, calibration, haptics and orchestration
- DEBUG level logging to files
- WARNING level console output for critical messages

Log Files:
- sensors.log: Adapter lifecycle, dropped readings, classified failures
- permission.log: Authorization transitions
- calibration.log: Calibration transitions, staleness and persistence
- haptics.log: Every feedback pulse
- orchestrator.log: Snapshot wiring and session startup

Usage:
    from compass.core.telemetry.loggers.compass_logger import get_compass_logger

    compass_logger = get_compass_logger(session_dir=Path("logs/session_2025-07-17_10-30-00"))
    compass_logger.sensors.debug("Heading published")
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from compass.utils.config import Config

CHANNELS = {
    "sensors": "sensors.log",
    "permission": "permission.log",
    "calibration": "calibration.log",
    "haptics": "haptics.log",
    "orchestrator": "orchestrator.log",
}


class CompassLogger:
    """Singleton logger for the compass pipeline."""

    _instance = None
    _initialized = False

    def __new__(cls, session_dir: Optional[Path] = None, console_level: Optional[str] = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, session_dir: Optional[Path] = None, console_level: Optional[str] = None):
        if self._initialized:
            return

        # Use provided session directory or create new one
        if session_dir is None:
            timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            self.log_dir = Path(Config.LOG_DIR) / f"session_{timestamp}"
        else:
            self.log_dir = Path(session_dir)

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.console_level = getattr(logging, (console_level or Config.LOG_CONSOLE_LEVEL).upper(), logging.WARNING)

        for name, filename in CHANNELS.items():
            self._setup_logger(name, filename)

        CompassLogger._initialized = True

    def _setup_logger(self, name: str, filename: str):
        """Setup individual logger with file handler."""
        logger = logging.getLogger(f"compass.{name}")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        # Clear existing handlers
        logger.handlers.clear()

        # File handler
        fh = logging.FileHandler(self.log_dir / filename, mode='w')
        fh.setLevel(logging.DEBUG)

        # Console handler (critical messages only by default)
        ch = logging.StreamHandler()
        ch.setLevel(self.console_level)

        formatter = logging.Formatter(
            '%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s',
            datefmt='%H:%M:%S'
        )
        fh.setFormatter(formatter)
        ch.setFormatter(formatter)

        logger.addHandler(fh)
        logger.addHandler(ch)

        setattr(self, name, logger)

    def close(self):
        """Close all handlers and allow a new session to be created."""
        for name in CHANNELS:
            logger = getattr(self, name, None)
            if logger:
                for handler in logger.handlers[:]:
                    handler.close()
                    logger.removeHandler(handler)
                logger.propagate = True
        CompassLogger._instance = None
        CompassLogger._initialized = False


# Global instance
_compass_logger = None


def get_compass_logger(session_dir: Optional[Path] = None, console_level: Optional[str] = None) -> CompassLogger:
    """Get or create the compass logger instance."""
    global _compass_logger
    if _compass_logger is None or not CompassLogger._initialized:
        _compass_logger = CompassLogger(session_dir=session_dir, console_level=console_level)
    return _compass_logger
