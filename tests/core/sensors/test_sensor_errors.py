"""Tests for failure classification."""

from __future__ import annotations

import pytest

from compass.core.sensors.errors import (
    HeadingQualityFailure,
    PermissionDeniedError,
    PlatformError,
    PlatformErrorCode,
    SensorFailure,
    classify_failure,
)


@pytest.mark.parametrize(
    "code, expected",
    [
        (PlatformErrorCode.DENIED, PermissionDeniedError),
        (PlatformErrorCode.HEADING_FAILURE, HeadingQualityFailure),
        (PlatformErrorCode.LOCATION_UNKNOWN, SensorFailure),
        (PlatformErrorCode.NETWORK, SensorFailure),
        (PlatformErrorCode.UNKNOWN, SensorFailure),
    ],
)
def test_platform_codes_map_onto_taxonomy(code, expected):
    error = PlatformError(code, "platform said no")

    failure = classify_failure(error)

    assert isinstance(failure, expected)
    assert failure.cause is error
    assert str(failure) == "platform said no"


def test_arbitrary_exception_is_generic_failure():
    failure = classify_failure(RuntimeError())

    assert isinstance(failure, SensorFailure)
    assert failure.kind == "generic"
    assert str(failure) == "RuntimeError"


def test_already_classified_error_passes_through():
    original = HeadingQualityFailure("interference")

    assert classify_failure(original) is original


def test_platform_error_defaults_message_to_code():
    assert str(PlatformError(PlatformErrorCode.NETWORK)) == "network"
