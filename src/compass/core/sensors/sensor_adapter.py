"""
Bridge from the platform sensor source to typed pipeline events.

This module handles the interaction with the platform heading/location source:
- Start/stop lifecycle for heading and location updates (idempotent)
- Permission requests routed through the PermissionStateMachine
- Typed readings published on the EventBus
- Failure classification onto calibration FAILED or "permission needed"

Threading:
    Platform callbacks (``on_*``) run on the platform's background thread.
    They only build immutable readings and hand them to the dispatcher. All
    publication and state-machine access happens on the dispatcher.
    Public methods (``start``, ``stop``, ``request_permission``,
    calibration) are expected to be called on the dispatcher as well.

Cancellation:
    ``stop()`` bumps the session counter and records the stop time. Readings
    already queued for delivery carry the old session and are dropped, as is
    anything whose timestamp predates the stop.

Usage:
    adapter = SensorAdapter(platform, permission_machine, calibration_machine, bus, dispatcher)
    adapter.request_permission()
    ...
    adapter.stop()
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from compass.core.events.dispatcher import Dispatcher
from compass.core.events.event_bus import (
    EventBus,
    HeadingUpdated,
    PermissionChanged,
    PermissionNeeded,
    PositionUpdated,
    SensorFailed,
)
from compass.core.models import CalibrationTrigger, HeadingReading, PermissionState, PositionReading
from compass.core.sensors.errors import (
    HeadingQualityFailure,
    PermissionDeniedError,
    SensorError,
    classify_failure,
)
from compass.core.sensors.platform import (
    RawHeadingSample,
    RawLocationSample,
    SensorDelegate,
    SensorPlatform,
)
from compass.core.state.calibration_state_machine import CalibrationStateMachine
from compass.core.state.permission_state_machine import PermissionAction, PermissionStateMachine
from compass.utils.config_sections import SensorConfig, load_sensor_config

log = logging.getLogger("compass.sensors")


class SensorAdapter(SensorDelegate):
    """Owns the platform sensor lifecycle and publishes typed events."""

    def __init__(
        self,
        platform: SensorPlatform,
        permission_machine: PermissionStateMachine,
        calibration_machine: CalibrationStateMachine,
        bus: EventBus,
        dispatcher: Dispatcher,
        config: Optional[SensorConfig] = None,
    ) -> None:
        self.platform = platform
        self.permission_machine = permission_machine
        self.calibration_machine = calibration_machine
        self.bus = bus
        self.dispatcher = dispatcher
        self.config = config or load_sensor_config()

        self._running = False
        self._session = 0
        self._stopped_at: Optional[float] = None

        # Statistics
        self.headings_published = 0
        self.positions_published = 0
        self.readings_dropped = 0
        self.failures_seen = 0

        self.platform.configure(self.config.heading_filter, self.config.desired_accuracy)
        self.platform.set_delegate(self)

        # Seed the permission machine with what the platform already knows
        initial = self.platform.authorization_status
        transition = self.permission_machine.observe(initial)
        if transition.changed:
            self.bus.publish(PermissionChanged(previous=transition.previous, current=transition.current))

        log.info("SensorAdapter initialized (authorization=%s)", initial.value)

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------

    def request_permission(self) -> PermissionAction:
        """
        Ask for authorization without ever re-prompting a denied user.

        Returns:
            PermissionAction: What was done
        """
        action = self.permission_machine.next_action()
        if action == PermissionAction.REQUEST_AUTHORIZATION:
            log.info("Requesting when-in-use authorization")
            self.platform.request_when_in_use_authorization()
        elif action == PermissionAction.START_UPDATES:
            self._start_updates()
        else:
            log.info("Permission %s, manual settings change needed", self.permission_machine.state.value)
            self.bus.publish(PermissionNeeded(state=self.permission_machine.state))
        return action

    def start(self) -> bool:
        """
        Start heading and location updates if authorized.

        Without authorization this falls through to ``request_permission``.

        Returns:
            bool: True when updates are running after the call
        """
        if self._running:
            return True
        if not self.permission_machine.is_authorized:
            self.request_permission()
            return self._running
        self._start_updates()
        return True

    def stop(self) -> None:
        """Halt updates. Nothing captured before this call is published afterwards."""
        if not self._running:
            return
        self._running = False
        self._session += 1
        self._stopped_at = self.dispatcher.now()
        self.platform.stop_updating_location()
        self.platform.stop_updating_heading()
        log.info("Sensor updates stopped")

    def start_calibration(self) -> bool:
        """Begin calibration. The platform overlay is dismissed only when accepted."""
        accepted = self.calibration_machine.start()
        if accepted:
            self.platform.dismiss_heading_calibration_display()
        return accepted

    def stop_calibration(self) -> bool:
        accepted = self.calibration_machine.stop()
        if accepted:
            self.platform.dismiss_heading_calibration_display()
        return accepted

    def _start_updates(self) -> None:
        if self._running:
            return
        self._running = True
        self.platform.start_updating_location()
        self.platform.start_updating_heading()
        log.info("Sensor updates started")

    # ------------------------------------------------------------------
    # platform callbacks (background thread)
    # ------------------------------------------------------------------

    def on_heading(self, sample: RawHeadingSample) -> None:
        if not self._running:
            self.readings_dropped += 1
            return
        reading = HeadingReading.create(
            heading=sample.magnetic_heading,
            true_heading=sample.true_heading,
            magnetic_heading=sample.magnetic_heading,
            accuracy=sample.heading_accuracy,
            timestamp=sample.timestamp,
        )
        self.dispatcher.post(self._deliver_heading, reading, self._session)

    def on_locations(self, samples: Sequence[RawLocationSample]) -> None:
        if not samples:
            return
        if not self._running:
            self.readings_dropped += 1
            return
        # Earlier fixes in the same batch are superseded by the last one
        location = samples[-1]
        reading = PositionReading(
            latitude=location.latitude,
            longitude=location.longitude,
            altitude=location.altitude,
            accuracy=location.horizontal_accuracy,
            timestamp=location.timestamp,
        )
        self.dispatcher.post(self._deliver_position, reading, self._session)

    def on_authorization_changed(self, state: PermissionState) -> None:
        self.dispatcher.post(self._deliver_authorization, state)

    def on_failure(self, error: BaseException) -> None:
        failure = classify_failure(error)
        log.warning("Sensor failure (%s): %s", failure.kind, failure)
        self.dispatcher.post(self._deliver_failure, failure)

    # ------------------------------------------------------------------
    # delivery (dispatcher)
    # ------------------------------------------------------------------

    def _is_current(self, session: int, timestamp: float) -> bool:
        if not self._running or session != self._session:
            return False
        if self._stopped_at is not None and timestamp < self._stopped_at:
            return False
        return True

    def _deliver_heading(self, reading: HeadingReading, session: int) -> None:
        if not self._is_current(session, reading.timestamp):
            self.readings_dropped += 1
            return
        self.headings_published += 1
        self.bus.publish(HeadingUpdated(reading))

    def _deliver_position(self, reading: PositionReading, session: int) -> None:
        if not self._is_current(session, reading.timestamp):
            self.readings_dropped += 1
            return
        self.positions_published += 1
        self.bus.publish(PositionUpdated(reading))

    def _deliver_authorization(self, state: PermissionState) -> None:
        transition = self.permission_machine.observe(state)
        if transition.changed:
            self.bus.publish(PermissionChanged(previous=transition.previous, current=transition.current))

        if transition.newly_authorized:
            self._start_updates()
        elif transition.newly_blocked:
            self.stop()
            self.bus.publish(PermissionNeeded(state=state))

    def _deliver_failure(self, failure: SensorError) -> None:
        self.failures_seen += 1
        self.bus.publish(SensorFailed(error=failure, kind=failure.kind))

        if isinstance(failure, PermissionDeniedError):
            self.bus.publish(PermissionNeeded(state=self.permission_machine.state))
        elif isinstance(failure, HeadingQualityFailure):
            self.calibration_machine.fail(CalibrationTrigger.HEADING_FAILURE)
        else:
            self.calibration_machine.fail(CalibrationTrigger.SENSOR_FAILURE)

    def get_stats(self) -> dict:
        return {
            "running": self._running,
            "session": self._session,
            "headings_published": self.headings_published,
            "positions_published": self.positions_published,
            "readings_dropped": self.readings_dropped,
            "failures_seen": self.failures_seen,
        }
