#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Compass Orchestrator

Composes the sensor adapter, the permission and calibration state machines
and the pure reading aggregator into one snapshot for the UI layer, and
forwards UI intents back down.

Features:
- Single consistent snapshot (heading, position, permission, calibration,
  location detail flag, needle rotation target, permission-needed flag)
- Edge-triggered haptic on cardinal crossings (one pulse per crossing)
- Acknowledgement haptics for calibration start/stop and detail toggle
- Calibration staleness check scheduled once per session with a grace delay

Pipeline Flow:
    Platform -> SensorAdapter -> EventBus -> Orchestrator -> snapshot -> UI
    UI intent -> Orchestrator -> SensorAdapter / CalibrationStateMachine

All handlers run on the dispatcher (consumer context). UI intents must be
invoked there too.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Callable, Dict, List, Optional

from compass.core import reading_aggregator as aggregator
from compass.core.events.dispatcher import DelayedCall, Dispatcher
from compass.core.events.event_bus import (
    CalibrationChanged,
    EventBus,
    HeadingUpdated,
    PermissionChanged,
    PermissionNeeded,
    PositionUpdated,
)
from compass.core.events.observable import ObservableValue
from compass.core.models import CalibrationTrigger, CompassSnapshot, ThresholdCrossingEvent
from compass.core.sensors.sensor_adapter import SensorAdapter
from compass.core.services.haptic_service import HapticService
from compass.core.services.settings_service import SettingsService
from compass.core.state.calibration_state_machine import CalibrationStateMachine
from compass.core.state.permission_state_machine import PermissionStateMachine
from compass.utils.config_sections import HapticConfig, load_haptic_config

log = logging.getLogger("compass.orchestrator")

_FAILURE_TRIGGERS = (CalibrationTrigger.HEADING_FAILURE, CalibrationTrigger.SENSOR_FAILURE)


class CompassOrchestrator:
    """
    Merges the upstream streams and dispatches side effects.

    The orchestrator never mutates permission or calibration state itself. It
    reads the machines and forwards intents to the adapter, which owns the
    transitions.

    Attributes:
        sensor_adapter: Platform bridge, target of start/stop/permission intents
        permission_machine: Read-only view of authorization state
        calibration_machine: Read-only view of calibration state
        settings: Source of ``is_haptic_enabled``
        haptics: Actuator for feedback pulses
    """

    def __init__(
        self,
        sensor_adapter: SensorAdapter,
        permission_machine: PermissionStateMachine,
        calibration_machine: CalibrationStateMachine,
        settings: SettingsService,
        haptics: HapticService,
        bus: EventBus,
        dispatcher: Dispatcher,
        haptic_config: Optional[HapticConfig] = None,
    ) -> None:
        self.sensor_adapter = sensor_adapter
        self.permission_machine = permission_machine
        self.calibration_machine = calibration_machine
        self.settings = settings
        self.haptics = haptics
        self.bus = bus
        self.dispatcher = dispatcher
        self.haptic_config = haptic_config or load_haptic_config()

        self._snapshot: ObservableValue[CompassSnapshot] = ObservableValue(
            CompassSnapshot(
                permission_state=permission_machine.state,
                calibration_state=calibration_machine.state,
            )
        )

        # Edge-trigger latch per boundary: True once fired, until the heading moves away
        self._latched: Dict[float, bool] = {b: False for b in self.haptic_config.boundaries}
        self._previous_heading: Optional[float] = None

        self._session_started = False
        self._staleness_call: Optional[DelayedCall] = None

        # Statistics
        self.crossings_detected = 0
        self.crossing_pulses = 0

        self._unsubscribers: List[Callable[[], None]] = [
            bus.subscribe(HeadingUpdated, self._on_heading),
            bus.subscribe(PositionUpdated, self._on_position),
            bus.subscribe(PermissionChanged, self._on_permission_changed),
            bus.subscribe(PermissionNeeded, self._on_permission_needed),
            calibration_machine.subscribe(self._on_calibration_changed),
        ]

        log.info("CompassOrchestrator initialized")

    # ------------------------------------------------------------------
    # snapshot access
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> CompassSnapshot:
        return self._snapshot.value

    def subscribe(self, listener: Callable[[CompassSnapshot], None], emit_current: bool = False) -> Callable[[], None]:
        """Observe every new snapshot."""
        return self._snapshot.subscribe(listener, emit_current=emit_current)

    def _update(self, **changes) -> None:
        self._snapshot.set(replace(self._snapshot.value, **changes))

    # ------------------------------------------------------------------
    # session
    # ------------------------------------------------------------------

    def begin_session(self, request_permission: bool = True) -> Optional[DelayedCall]:
        """
        Run the once-per-session startup work.

        Schedules the staleness prompt after its grace delay (so it does not
        flash before the UI is up) and optionally asks for permission.

        Returns:
            DelayedCall or None: Pending staleness check, if one was scheduled
        """
        if self._session_started:
            return self._staleness_call
        self._session_started = True

        now = self.calibration_machine.now()
        delay = self.calibration_machine.staleness_delay(now)
        if delay is not None:
            log.info("Calibration stale, prompting in %.1fs", delay)
            self._staleness_call = self.dispatcher.call_later(delay, self._apply_staleness)

        if request_permission:
            self.request_permission()
        return self._staleness_call

    def _apply_staleness(self) -> None:
        self._staleness_call = None
        self.calibration_machine.mark_stale()

    def close(self) -> None:
        if self._staleness_call is not None:
            self._staleness_call.cancel()
            self._staleness_call = None
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # ------------------------------------------------------------------
    # intents
    # ------------------------------------------------------------------

    def request_permission(self) -> None:
        self.sensor_adapter.request_permission()

    def start(self) -> None:
        self.sensor_adapter.start()

    def stop(self) -> None:
        self.sensor_adapter.stop()
        # Straddle detection must not bridge the gap across a stop
        self._previous_heading = None

    def start_calibration(self) -> bool:
        accepted = self.sensor_adapter.start_calibration()
        if accepted and self._haptics_enabled():
            self.haptics.medium_feedback()
        return accepted

    def stop_calibration(self) -> bool:
        accepted = self.sensor_adapter.stop_calibration()
        if accepted and self._haptics_enabled():
            self.haptics.selection_feedback()
        return accepted

    def toggle_location_detail(self) -> None:
        self._update(show_location_detail=not self._snapshot.value.show_location_detail)
        if self._haptics_enabled():
            self.haptics.selection_feedback()

    # ------------------------------------------------------------------
    # upstream handlers
    # ------------------------------------------------------------------

    def _on_heading(self, event: HeadingUpdated) -> None:
        reading = event.reading
        changes = {"heading": reading}
        # Without a fix the needle stays where it was
        if math.isfinite(reading.heading):
            changes["needle_rotation"] = aggregator.needle_rotation(reading.heading)
        self._update(**changes)

        boundary = self._detect_crossing(reading.heading)
        self._previous_heading = reading.heading
        if boundary is None:
            return

        self.crossings_detected += 1
        self.bus.publish(ThresholdCrossingEvent(boundary=boundary, timestamp=reading.timestamp))
        if self._haptics_enabled():
            self.haptics.light_feedback()
            self.crossing_pulses += 1

    def _detect_crossing(self, heading: float) -> Optional[float]:
        """
        Edge-triggered crossing check.

        A boundary fires when the heading enters its tolerance band or the
        step from the previous heading passes over it. It then stays latched
        until the heading is at least the re-arm distance away.
        """
        config = self.haptic_config
        candidates = set()
        if self._previous_heading is not None:
            candidates.update(
                aggregator.crossed_boundaries(self._previous_heading, heading, config.boundaries)
            )
        near = aggregator.nearest_boundary_within(heading, config.crossing_tolerance, config.boundaries)
        if near is not None:
            candidates.add(near)

        fired: Optional[float] = None
        for boundary in config.boundaries:
            if boundary in candidates:
                if not self._latched[boundary]:
                    self._latched[boundary] = True
                    if fired is None:
                        fired = boundary
            elif self._latched[boundary]:
                if aggregator.angular_distance(heading, boundary) >= config.rearm_distance:
                    self._latched[boundary] = False
        return fired

    def _on_position(self, event: PositionUpdated) -> None:
        self._update(position=event.reading)

    def _on_permission_changed(self, event: PermissionChanged) -> None:
        changes = {"permission_state": event.current}
        if event.current.is_authorized:
            changes["permission_needed"] = False
        elif event.current.is_blocked:
            # Revocation stops the adapter; same rule as an explicit stop
            self._previous_heading = None
        self._update(**changes)

    def _on_permission_needed(self, event: PermissionNeeded) -> None:
        self._update(permission_needed=True)

    def _on_calibration_changed(self, change: CalibrationChanged) -> None:
        self._update(calibration_state=change.current)
        if change.trigger in _FAILURE_TRIGGERS and self._haptics_enabled():
            self.haptics.error_feedback()

    def _haptics_enabled(self) -> bool:
        return bool(self.settings.is_haptic_enabled.value)

    # ------------------------------------------------------------------
    # presentation
    # ------------------------------------------------------------------

    @property
    def is_location_authorized(self) -> bool:
        return self._snapshot.value.permission_state.is_authorized

    @property
    def formatted_heading(self) -> str:
        return aggregator.format_heading(self._snapshot.value.heading)

    @property
    def cardinal_label(self) -> str:
        return aggregator.cardinal_label(self._snapshot.value.heading)

    @property
    def accuracy_label(self) -> str:
        return aggregator.accuracy_label(self._snapshot.value.heading)

    @property
    def formatted_coordinates(self) -> str:
        return aggregator.format_coordinates(self._snapshot.value.position)

    @property
    def formatted_altitude(self) -> str:
        return aggregator.format_altitude(self._snapshot.value.position)

    def get_status(self) -> dict:
        snapshot = self._snapshot.value
        return {
            "heading": self.formatted_heading,
            "cardinal": self.cardinal_label,
            "accuracy": self.accuracy_label,
            "coordinates": self.formatted_coordinates,
            "altitude": self.formatted_altitude,
            "permission": snapshot.permission_state.value,
            "calibration": snapshot.calibration_state.value,
            "permission_needed": snapshot.permission_needed,
            "crossings_detected": self.crossings_detected,
            "crossing_pulses": self.crossing_pulses,
        }
