"""
Boundary between the pipeline and the platform sensor source.

A platform implementation owns the real compass/location hardware and calls
back into a ``SensorDelegate`` serially on its own background thread:

    on_heading(sample)                 -> one RawHeadingSample
    on_locations(samples)              -> batch of RawLocationSample, oldest first
    on_authorization_changed(state)    -> new PermissionState
    on_failure(error)                  -> any exception, usually PlatformError

Start/stop and authorization requests are fire-and-forget; results only
arrive through the delegate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from compass.core.models import PermissionState


@dataclass(frozen=True)
class RawHeadingSample:
    magnetic_heading: float
    true_heading: float
    heading_accuracy: float
    timestamp: float


@dataclass(frozen=True)
class RawLocationSample:
    latitude: float
    longitude: float
    altitude: float
    horizontal_accuracy: float
    timestamp: float


class SensorDelegate:
    """Callbacks a platform invokes. Implemented by SensorAdapter."""

    def on_heading(self, sample: RawHeadingSample) -> None:
        raise NotImplementedError

    def on_locations(self, samples: Sequence[RawLocationSample]) -> None:
        raise NotImplementedError

    def on_authorization_changed(self, state: PermissionState) -> None:
        raise NotImplementedError

    def on_failure(self, error: BaseException) -> None:
        raise NotImplementedError


class SensorPlatform:
    """Platform heading/location source."""

    delegate: Optional[SensorDelegate] = None

    def set_delegate(self, delegate: SensorDelegate) -> None:
        self.delegate = delegate

    def configure(self, heading_filter: float, desired_accuracy: str) -> None:
        """Optional hints; platforms without tuning may ignore them."""

    @property
    def authorization_status(self) -> PermissionState:
        raise NotImplementedError

    def request_when_in_use_authorization(self) -> None:
        raise NotImplementedError

    def start_updating_heading(self) -> None:
        raise NotImplementedError

    def stop_updating_heading(self) -> None:
        raise NotImplementedError

    def start_updating_location(self) -> None:
        raise NotImplementedError

    def stop_updating_location(self) -> None:
        raise NotImplementedError

    def dismiss_heading_calibration_display(self) -> None:
        raise NotImplementedError
