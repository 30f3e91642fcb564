"""
Typed publish/subscribe channel between the sensor adapter and its consumers.

Subscribers register against an event dataclass type and receive every
published instance of exactly that type. Publishing is synchronous: the
adapter marshals onto the consumer context *before* publishing, so handlers
always run there.

Usage:
    bus = EventBus()
    unsubscribe = bus.subscribe(HeadingUpdated, on_heading)
    bus.publish(HeadingUpdated(reading))
    unsubscribe()
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, List, Optional, Type, TypeVar

from compass.core.models import (
    CalibrationState,
    CalibrationTrigger,
    HeadingReading,
    PermissionState,
    PositionReading,
)

log = logging.getLogger("compass.events")

E = TypeVar("E")
Handler = Callable[[Any], None]


@dataclass(frozen=True)
class HeadingUpdated:
    reading: HeadingReading


@dataclass(frozen=True)
class PositionUpdated:
    reading: PositionReading


@dataclass(frozen=True)
class PermissionChanged:
    previous: PermissionState
    current: PermissionState


@dataclass(frozen=True)
class PermissionNeeded:
    """Permission is denied or restricted; only a manual settings change helps."""
    state: PermissionState


@dataclass(frozen=True)
class CalibrationChanged:
    previous: CalibrationState
    current: CalibrationState
    trigger: CalibrationTrigger
    timestamp: float


@dataclass(frozen=True)
class SensorFailed:
    error: Exception
    kind: str


class EventBus:
    """Synchronous typed event emitter."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``. Returns an unsubscribe callable."""
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type)
            if handlers and handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: Any) -> int:
        """
        Deliver ``event`` to every handler registered for its type.

        A failing handler is logged and does not stop delivery to the rest.

        Returns:
            int: Number of handlers that ran without raising
        """
        delivered = 0
        for handler in list(self._handlers.get(type(event), ())):
            try:
                handler(event)
                delivered += 1
            except Exception:
                log.exception("Handler %r failed for %s", handler, type(event).__name__)
        return delivered

    def subscriber_count(self, event_type: Optional[type] = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, ()))
        return sum(len(handlers) for handlers in self._handlers.values())
