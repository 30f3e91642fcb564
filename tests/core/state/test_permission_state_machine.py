"""Tests for the permission state machine."""

from __future__ import annotations

import pytest

from compass.core.models import PermissionState
from compass.core.state.permission_state_machine import PermissionAction, PermissionStateMachine


def test_initial_state_requests_authorization():
    machine = PermissionStateMachine()

    assert machine.state == PermissionState.UNDETERMINED
    assert machine.next_action() == PermissionAction.REQUEST_AUTHORIZATION
    assert not machine.is_authorized


@pytest.mark.parametrize("state", [PermissionState.AUTHORIZED_WHILE_IN_USE, PermissionState.AUTHORIZED_ALWAYS])
def test_authorized_states_start_updates(state):
    machine = PermissionStateMachine()
    transition = machine.observe(state)

    assert transition.changed
    assert transition.newly_authorized
    assert machine.next_action() == PermissionAction.START_UPDATES


@pytest.mark.parametrize("state", [PermissionState.DENIED, PermissionState.RESTRICTED])
def test_blocked_states_need_manual_settings_change(state):
    machine = PermissionStateMachine()
    transition = machine.observe(state)

    assert transition.newly_blocked
    assert machine.needs_manual_settings_change
    assert machine.next_action() == PermissionAction.NOTIFY_PERMISSION_NEEDED


def test_settings_change_can_leave_denied():
    machine = PermissionStateMachine(initial=PermissionState.DENIED)

    transition = machine.observe(PermissionState.AUTHORIZED_WHILE_IN_USE)

    assert transition.previous == PermissionState.DENIED
    assert transition.newly_authorized
    assert not machine.needs_manual_settings_change


def test_repeated_observation_is_not_a_change():
    machine = PermissionStateMachine(initial=PermissionState.AUTHORIZED_ALWAYS)

    transition = machine.observe(PermissionState.AUTHORIZED_ALWAYS)

    assert not transition.changed
    assert not transition.newly_authorized


def test_upgrade_between_authorized_states_is_not_newly_authorized():
    machine = PermissionStateMachine(initial=PermissionState.AUTHORIZED_WHILE_IN_USE)

    transition = machine.observe(PermissionState.AUTHORIZED_ALWAYS)

    assert transition.changed
    assert not transition.newly_authorized
