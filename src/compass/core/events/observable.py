from __future__ import annotations

import logging
from typing import Callable, Generic, List, TypeVar

log = logging.getLogger("compass.events")

T = TypeVar("T")


class ObservableValue(Generic[T]):
    """Current value plus change notifications, like a current-value subject."""

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._listeners: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Replace the value. Listeners only hear about actual changes."""
        if value == self._value:
            return
        self._value = value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                log.exception("Observer %r failed", listener)

    def subscribe(self, listener: Callable[[T], None], emit_current: bool = False) -> Callable[[], None]:
        self._listeners.append(listener)
        if emit_current:
            listener(self._value)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
