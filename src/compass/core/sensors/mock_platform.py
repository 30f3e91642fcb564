#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Simulated sensor platform for development without a device.

Drop-in SensorPlatform that produces a slow heading sweep with gaussian
noise, periodic location batches, scripted authorization answers and
injectable failures. It calls the delegate exactly like a real platform:
from its own generator thread when streaming, or from the caller's thread
when stepped manually.

Operating modes:
- stepped: ``step()`` / ``run_for()`` emit samples synchronously (tests, replay)
- streaming: ``start_stream()`` runs a generator thread at ``rate_hz``

Usage:
    platform = SimulatedSensorPlatform(grant=PermissionState.AUTHORIZED_WHILE_IN_USE)
    adapter = SensorAdapter(platform, ...)
    platform.run_for(5.0)
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

import numpy as np

from compass.core.models import PermissionState
from compass.core.sensors.errors import PlatformError, PlatformErrorCode
from compass.core.sensors.platform import RawHeadingSample, RawLocationSample, SensorPlatform
from compass.utils.config_sections import SimulationConfig, load_simulation_config

log = logging.getLogger("compass.sensors")


class SimulatedSensorPlatform(SensorPlatform):
    """Synthetic heading/location source with scripted authorization."""

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        initial_status: PermissionState = PermissionState.UNDETERMINED,
        grant: PermissionState = PermissionState.AUTHORIZED_WHILE_IN_USE,
        start_heading: float = 0.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            config: Rate, sweep speed, noise and location of the simulation
            initial_status: Authorization the platform reports at startup
            grant: Answer given to the first authorization request
            start_heading: Heading of the first sample in degrees
            clock: Timestamp source for samples (the dispatcher clock in replay)
        """
        self.config = config or load_simulation_config()
        self._status = initial_status
        self.grant = grant
        self.clock = clock
        self.delegate = None

        self.heading_active = False
        self.location_active = False
        self.authorization_requests = 0
        self.calibration_dismissals = 0
        self.heading_filter = None
        self.desired_accuracy = None

        self._heading = start_heading
        self._rng = np.random.default_rng(self.config.seed)
        self.sample_count = 0

        self._lock = threading.Lock()
        self.streaming = False
        self._stream_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # SensorPlatform
    # ------------------------------------------------------------------

    def configure(self, heading_filter: float, desired_accuracy: str) -> None:
        self.heading_filter = heading_filter
        self.desired_accuracy = desired_accuracy

    @property
    def authorization_status(self) -> PermissionState:
        return self._status

    def request_when_in_use_authorization(self) -> None:
        self.authorization_requests += 1
        if self._status != PermissionState.UNDETERMINED:
            return
        self.change_authorization(self.grant)

    def start_updating_heading(self) -> None:
        self.heading_active = True

    def stop_updating_heading(self) -> None:
        self.heading_active = False

    def start_updating_location(self) -> None:
        self.location_active = True

    def stop_updating_location(self) -> None:
        self.location_active = False

    def dismiss_heading_calibration_display(self) -> None:
        self.calibration_dismissals += 1

    # ------------------------------------------------------------------
    # scripted events
    # ------------------------------------------------------------------

    def change_authorization(self, state: PermissionState) -> None:
        """Simulate the user answering a prompt or changing system settings."""
        self._status = state
        if self.delegate is not None:
            self.delegate.on_authorization_changed(state)

    def inject_failure(self, code: PlatformErrorCode, message: str = "") -> None:
        if self.delegate is not None:
            self.delegate.on_failure(PlatformError(code, message))

    # ------------------------------------------------------------------
    # sample generation
    # ------------------------------------------------------------------

    def step(self, dt: Optional[float] = None) -> None:
        """Advance the simulation by one sample period and emit what is active."""
        dt = 1.0 / self.config.rate_hz if dt is None else dt
        with self._lock:
            self._heading = (self._heading + self.config.sweep_deg_per_second * dt) % 360.0
            self.sample_count += 1
            count = self.sample_count
            noisy = float(self._heading + self._rng.normal(0.0, self.config.noise_deg))

        now = self.clock()
        if self.heading_active and self.delegate is not None:
            magnetic = noisy % 360.0
            self.delegate.on_heading(
                RawHeadingSample(
                    magnetic_heading=magnetic,
                    true_heading=magnetic,
                    heading_accuracy=self.config.heading_accuracy,
                    timestamp=now,
                )
            )

        every = max(1, self.config.position_every_n)
        if self.location_active and self.delegate is not None and count % every == 0:
            self.delegate.on_locations(self._location_batch(now))

    def run_for(self, seconds: float, on_step: Optional[Callable[[float], None]] = None) -> int:
        """
        Emit ``seconds`` worth of samples synchronously.

        Args:
            seconds: Simulated duration
            on_step: Called with the step duration after every sample, e.g. to
                     advance a ManualDispatcher clock

        Returns:
            int: Number of steps taken
        """
        dt = 1.0 / self.config.rate_hz
        steps = int(round(seconds * self.config.rate_hz))
        for _ in range(steps):
            self.step(dt)
            if on_step is not None:
                on_step(dt)
        return steps

    def _location_batch(self, now: float) -> List[RawLocationSample]:
        # Two fixes per batch; the adapter must keep only the last one
        jitter = self._rng.normal(0.0, 1e-5, size=(2, 2))
        return [
            RawLocationSample(
                latitude=self.config.latitude + float(jitter[i, 0]),
                longitude=self.config.longitude + float(jitter[i, 1]),
                altitude=self.config.altitude,
                horizontal_accuracy=5.0 if i == 1 else 25.0,
                timestamp=now - (1 - i) * 0.5,
            )
            for i in range(2)
        ]

    # ------------------------------------------------------------------
    # streaming
    # ------------------------------------------------------------------

    def start_stream(self) -> None:
        """Emit samples from a background thread, like a real platform."""
        if self.streaming:
            return
        self.streaming = True
        self._stream_thread = threading.Thread(target=self._stream_loop, name="SimulatedSensorPlatform", daemon=True)
        self._stream_thread.start()
        log.info("Simulated platform streaming at %.1f Hz", self.config.rate_hz)

    def stop_stream(self) -> None:
        self.streaming = False
        if self._stream_thread:
            self._stream_thread.join(timeout=2.0)
        self._stream_thread = None
        log.info("Simulated platform stopped after %d samples", self.sample_count)

    def _stream_loop(self) -> None:
        interval = 1.0 / self.config.rate_hz
        while self.streaming:
            loop_start = time.time()
            self.step(interval)
            elapsed = time.time() - loop_start
            sleep_time = max(0.0, interval - elapsed)
            if sleep_time > 0:
                time.sleep(sleep_time)
