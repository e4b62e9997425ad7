"""
Vehicle status lifecycle tests.

Covers every (status, event) pair, including the rejected ones.
"""

import pytest

from backend.app.core.exceptions import InvalidStateError
from backend.app.domain.fleet.status_machine import (
    SideEffect,
    VehicleEvent,
    event_for_requested_status,
    transition,
)
from backend.app.models.enums import VehicleStatus


@pytest.mark.parametrize("current,event,expected", [
    (VehicleStatus.AVAILABLE, VehicleEvent.ASSIGN, VehicleStatus.ASSIGNED),
    (VehicleStatus.ASSIGNED, VehicleEvent.ASSIGN, VehicleStatus.ASSIGNED),
    (VehicleStatus.AVAILABLE, VehicleEvent.UNASSIGN, VehicleStatus.AVAILABLE),
    (VehicleStatus.ASSIGNED, VehicleEvent.UNASSIGN, VehicleStatus.AVAILABLE),
    (VehicleStatus.MAINTENANCE, VehicleEvent.UNASSIGN, VehicleStatus.MAINTENANCE),
])
def test_assignment_transitions(current, event, expected):
    result = transition(current, event)
    assert result.status == expected
    assert result.side_effects == ()


@pytest.mark.parametrize("current", list(VehicleStatus))
def test_entering_maintenance_always_schedules_entry(current):
    """Maintenance can be entered from any status and always creates an entry."""
    result = transition(current, VehicleEvent.ENTER_MAINTENANCE)
    assert result.status == VehicleStatus.MAINTENANCE
    assert result.side_effects == (SideEffect.CREATE_MAINTENANCE_ENTRY,)


def test_leaving_maintenance_depends_on_reference():
    assert transition(VehicleStatus.MAINTENANCE, VehicleEvent.LEAVE_MAINTENANCE).status == VehicleStatus.AVAILABLE
    assert transition(
        VehicleStatus.MAINTENANCE, VehicleEvent.LEAVE_MAINTENANCE, has_driver=True
    ).status == VehicleStatus.ASSIGNED


def test_assigning_vehicle_in_maintenance_is_rejected():
    with pytest.raises(InvalidStateError) as exc_info:
        transition(VehicleStatus.MAINTENANCE, VehicleEvent.ASSIGN)
    assert exc_info.value.status_code == 400
    assert "maintenance" in exc_info.value.message


@pytest.mark.parametrize("current", [VehicleStatus.AVAILABLE, VehicleStatus.ASSIGNED])
def test_leaving_maintenance_when_not_in_maintenance_is_rejected(current):
    with pytest.raises(InvalidStateError):
        transition(current, VehicleEvent.LEAVE_MAINTENANCE)


def test_plain_strings_are_accepted():
    assert transition("available", "assign").status == VehicleStatus.ASSIGNED


def test_requested_status_mapping():
    assert event_for_requested_status(VehicleStatus.MAINTENANCE) == VehicleEvent.ENTER_MAINTENANCE
    assert event_for_requested_status("available") == VehicleEvent.LEAVE_MAINTENANCE
    with pytest.raises(InvalidStateError):
        event_for_requested_status(VehicleStatus.ASSIGNED)
