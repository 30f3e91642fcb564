"""
Sensor failure taxonomy.

Platform errors arrive as arbitrary exceptions through the failure callback.
``classify_failure`` maps each one onto:

- PermissionDeniedError: surfaced as "permission needed", never retried
- HeadingQualityFailure: calibration goes to FAILED, user can recalibrate
- SensorFailure: anything else, also mapped to calibration FAILED
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class PlatformErrorCode(Enum):
    DENIED = "denied"
    HEADING_FAILURE = "heading_failure"
    LOCATION_UNKNOWN = "location_unknown"
    NETWORK = "network"
    UNKNOWN = "unknown"


class PlatformError(Exception):
    """Error reported by the platform sensor source."""

    def __init__(self, code: PlatformErrorCode, message: str = "") -> None:
        self.code = code
        self.message = message or code.value
        super().__init__(self.message)


class SensorError(Exception):
    """Base class for classified sensor failures."""

    kind = "sensor"

    def __init__(self, message: str = "", cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class PermissionDeniedError(SensorError):
    kind = "permission_denied"


class HeadingQualityFailure(SensorError):
    kind = "heading_quality"


class SensorFailure(SensorError):
    kind = "generic"


def classify_failure(error: BaseException) -> SensorError:
    """Map any platform exception onto the failure taxonomy."""
    if isinstance(error, SensorError):
        return error

    code = getattr(error, "code", None)
    message = str(error) or type(error).__name__
    if code == PlatformErrorCode.DENIED:
        return PermissionDeniedError(message, cause=error)
    if code == PlatformErrorCode.HEADING_FAILURE:
        return HeadingQualityFailure(message, cause=error)
    return SensorFailure(message, cause=error)
