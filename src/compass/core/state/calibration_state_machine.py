"""
Compass calibration lifecycle.

    NOT_STARTED --start--> IN_PROGRESS --stop--> COMPLETED
                                 |
                        sensor failure (any state)
                                 v
                              FAILED

COMPLETED and FAILED re-enter IN_PROGRESS on an explicit start. Only one
session can be in progress; a second start is a no-op.

Staleness: when the last successful completion is older than the configured
window (30 days), or there never was one, the session start schedules a
forced transition to FAILED. It reuses the FAILED state so the UI shows the
same "calibrate now" prompt.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from compass.core.events.event_bus import CalibrationChanged
from compass.core.models import CalibrationState, CalibrationTrigger
from compass.utils.config_sections import CalibrationConfig, load_calibration_config

log = logging.getLogger("compass.calibration")

Listener = Callable[[CalibrationChanged], None]


class CalibrationStateMachine:
    """Single owner of the CalibrationState."""

    def __init__(
        self,
        store=None,
        clock: Callable[[], float] = time.time,
        config: Optional[CalibrationConfig] = None,
    ) -> None:
        """
        Args:
            store: Optional CalibrationStore for the last completion timestamp
            clock: Seconds since the epoch, injectable for tests
            config: Staleness window and grace delays
        """
        self.store = store
        self.clock = clock
        self.config = config or load_calibration_config()
        self._state = CalibrationState.NOT_STARTED
        self._listeners: List[Listener] = []

    @property
    def state(self) -> CalibrationState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """NOT_STARTED/COMPLETED/FAILED -> IN_PROGRESS. False when already running."""
        if self._state == CalibrationState.IN_PROGRESS:
            log.debug("Calibration already in progress, start ignored")
            return False
        return self._transition(CalibrationState.IN_PROGRESS, CalibrationTrigger.USER_START)

    def stop(self) -> bool:
        """IN_PROGRESS -> COMPLETED and record the completion time."""
        if self._state != CalibrationState.IN_PROGRESS:
            log.debug("Calibration stop ignored in state %s", self._state.value)
            return False
        self._record_completion()
        return self._transition(CalibrationState.COMPLETED, CalibrationTrigger.USER_STOP)

    def fail(self, trigger: CalibrationTrigger = CalibrationTrigger.HEADING_FAILURE) -> bool:
        """Any state -> FAILED."""
        if self._state == CalibrationState.FAILED:
            return False
        return self._transition(CalibrationState.FAILED, trigger)

    def mark_stale(self) -> bool:
        """
        Force FAILED when the last completion is stale.

        Re-evaluated at call time: a calibration completed or started during
        the grace delay cancels the prompt.
        """
        if self._state in (CalibrationState.IN_PROGRESS, CalibrationState.FAILED):
            return False
        if not self.is_stale():
            return False
        log.info("Calibration is stale, prompting recalibration")
        return self._transition(CalibrationState.FAILED, CalibrationTrigger.STALE)

    # ------------------------------------------------------------------
    # staleness
    # ------------------------------------------------------------------

    def last_completed(self) -> Optional[datetime]:
        if self.store is None:
            return None
        return self.store.load_last_calibration()

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        last = self.last_completed()
        if last is None:
            return True
        now = now or self.now()
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        return (now - last).days > self.config.stale_after_days

    def staleness_delay(self, now: Optional[datetime] = None) -> Optional[float]:
        """
        Grace delay before prompting, or None when calibration is fresh.

        Never-calibrated devices wait a little longer than stale ones.
        """
        if not self.is_stale(now):
            return None
        if self.last_completed() is None:
            return self.config.never_calibrated_grace_seconds
        return self.config.stale_grace_seconds

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    def _record_completion(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save_last_calibration(self.now())
        except OSError as exc:
            log.warning("Could not persist calibration timestamp: %s", exc)

    def _transition(self, state: CalibrationState, trigger: CalibrationTrigger) -> bool:
        change = CalibrationChanged(
            previous=self._state,
            current=state,
            trigger=trigger,
            timestamp=self.clock(),
        )
        self._state = state
        log.info("Calibration %s -> %s (%s)", change.previous.value, change.current.value, trigger.value)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                log.exception("Calibration listener %r failed", listener)
        return True
