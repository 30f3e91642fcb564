"""
Haptic actuator boundary.

The actuator itself is platform code. The pipeline only needs discrete
fire-and-forget pulses; ``LoggingHapticService`` stands in for the actuator
when running without a device and keeps counts for the demo summary.
"""

from __future__ import annotations

import logging
from collections import Counter

log = logging.getLogger("compass.haptics")


class HapticService:
    """Discrete feedback pulses."""

    def light_feedback(self) -> None:
        raise NotImplementedError

    def medium_feedback(self) -> None:
        raise NotImplementedError

    def selection_feedback(self) -> None:
        raise NotImplementedError

    def error_feedback(self) -> None:
        raise NotImplementedError


class LoggingHapticService(HapticService):
    """Records pulses in the haptics log instead of driving hardware."""

    def __init__(self) -> None:
        self.counts: Counter = Counter()

    def _pulse(self, kind: str) -> None:
        self.counts[kind] += 1
        log.debug("Haptic pulse: %s", kind)

    def light_feedback(self) -> None:
        self._pulse("light")

    def medium_feedback(self) -> None:
        self._pulse("medium")

    def selection_feedback(self) -> None:
        self._pulse("selection")

    def error_feedback(self) -> None:
        self._pulse("error")
