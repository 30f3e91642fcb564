"""
Location/heading authorization state.

Undetermined -> {AuthorizedWhileInUse, AuthorizedAlways, Denied, Restricted}.

Denied and Restricted are terminal from the app's point of view. The only
way out is a manual settings change, which shows up as a platform
authorization callback and is applied through ``observe``. Asking for
permission in those states never prompts again; it produces
NOTIFY_PERMISSION_NEEDED instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from compass.core.models import PermissionState

log = logging.getLogger("compass.permission")


class PermissionAction(Enum):
    REQUEST_AUTHORIZATION = "request_authorization"
    START_UPDATES = "start_updates"
    NOTIFY_PERMISSION_NEEDED = "notify_permission_needed"


@dataclass(frozen=True)
class PermissionTransition:
    previous: PermissionState
    current: PermissionState

    @property
    def changed(self) -> bool:
        return self.previous != self.current

    @property
    def newly_authorized(self) -> bool:
        return self.current.is_authorized and not self.previous.is_authorized

    @property
    def newly_blocked(self) -> bool:
        return self.current.is_blocked and not self.previous.is_blocked


class PermissionStateMachine:
    """Single owner of the PermissionState."""

    def __init__(self, initial: PermissionState = PermissionState.UNDETERMINED) -> None:
        self._state = initial

    @property
    def state(self) -> PermissionState:
        return self._state

    @property
    def is_authorized(self) -> bool:
        return self._state.is_authorized

    @property
    def needs_manual_settings_change(self) -> bool:
        return self._state.is_blocked

    def next_action(self) -> PermissionAction:
        """Decide what a permission request should do in the current state."""
        if self._state == PermissionState.UNDETERMINED:
            return PermissionAction.REQUEST_AUTHORIZATION
        if self._state.is_authorized:
            return PermissionAction.START_UPDATES
        return PermissionAction.NOTIFY_PERMISSION_NEEDED

    def observe(self, state: PermissionState) -> PermissionTransition:
        """Apply an authorization state reported by the platform."""
        transition = PermissionTransition(previous=self._state, current=state)
        if transition.changed:
            log.info("Permission %s -> %s", transition.previous.value, transition.current.value)
        self._state = state
        return transition
