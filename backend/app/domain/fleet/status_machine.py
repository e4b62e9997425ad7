"""
Vehicle status lifecycle.

available <-> assigned is driven by assignment and release; maintenance is
entered on explicit request from any status and left on explicit request.
Maintenance suspends an assignment without breaking it: the driver keeps
the reference, and leaving maintenance restores `assigned` when a driver
still holds the vehicle.
"""

import enum
from dataclasses import dataclass
from typing import Tuple

from backend.app.core.exceptions import InvalidStateError
from backend.app.models.enums import VehicleStatus


class VehicleEvent(str, enum.Enum):
    ASSIGN = "assign"
    UNASSIGN = "unassign"
    ENTER_MAINTENANCE = "enter_maintenance"
    LEAVE_MAINTENANCE = "leave_maintenance"


class SideEffect(str, enum.Enum):
    CREATE_MAINTENANCE_ENTRY = "create_maintenance_entry"


@dataclass(frozen=True)
class Transition:
    status: VehicleStatus
    side_effects: Tuple[SideEffect, ...] = ()


_ASSIGNED = Transition(VehicleStatus.ASSIGNED)
_AVAILABLE = Transition(VehicleStatus.AVAILABLE)
_MAINTENANCE = Transition(VehicleStatus.MAINTENANCE)
_TO_MAINTENANCE = Transition(VehicleStatus.MAINTENANCE, (SideEffect.CREATE_MAINTENANCE_ENTRY,))

# LEAVE_MAINTENANCE is resolved in transition() because it depends on the reference
TRANSITIONS = {
    (VehicleStatus.AVAILABLE, VehicleEvent.ASSIGN): _ASSIGNED,
    (VehicleStatus.ASSIGNED, VehicleEvent.ASSIGN): _ASSIGNED,
    (VehicleStatus.AVAILABLE, VehicleEvent.UNASSIGN): _AVAILABLE,
    (VehicleStatus.ASSIGNED, VehicleEvent.UNASSIGN): _AVAILABLE,
    (VehicleStatus.MAINTENANCE, VehicleEvent.UNASSIGN): _MAINTENANCE,
    (VehicleStatus.AVAILABLE, VehicleEvent.ENTER_MAINTENANCE): _TO_MAINTENANCE,
    (VehicleStatus.ASSIGNED, VehicleEvent.ENTER_MAINTENANCE): _TO_MAINTENANCE,
    (VehicleStatus.MAINTENANCE, VehicleEvent.ENTER_MAINTENANCE): _TO_MAINTENANCE,
}

_REJECTIONS = {
    (VehicleStatus.MAINTENANCE, VehicleEvent.ASSIGN): "Vehicle is under maintenance and cannot be assigned",
    (VehicleStatus.AVAILABLE, VehicleEvent.LEAVE_MAINTENANCE): "Vehicle is not under maintenance",
    (VehicleStatus.ASSIGNED, VehicleEvent.LEAVE_MAINTENANCE): "Vehicle is not under maintenance",
}


def transition(current: VehicleStatus, event: VehicleEvent, has_driver: bool = False) -> Transition:
    """
    Apply `event` to a vehicle in status `current`.

    Args:
        current: Status the vehicle is in now
        event: What is happening to it
        has_driver: Whether a driver references the vehicle (LEAVE_MAINTENANCE only)

    Returns:
        The target status and the side effects the caller must run

    Raises:
        InvalidStateError: If the transition is not defined
    """
    current = VehicleStatus(current)
    event = VehicleEvent(event)

    if (current, event) == (VehicleStatus.MAINTENANCE, VehicleEvent.LEAVE_MAINTENANCE):
        return _ASSIGNED if has_driver else _AVAILABLE

    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        message = _REJECTIONS.get((current, event), f"Cannot {event.value} a vehicle that is {current.value}")
        raise InvalidStateError(message, details={"status": current.value, "event": event.value}) from None


def event_for_requested_status(requested: VehicleStatus) -> VehicleEvent:
    """
    Map an explicit status-change request to its event.

    `assigned` is never requested directly: it follows from assignment.
    """
    requested = VehicleStatus(requested)
    if requested == VehicleStatus.MAINTENANCE:
        return VehicleEvent.ENTER_MAINTENANCE
    if requested == VehicleStatus.AVAILABLE:
        return VehicleEvent.LEAVE_MAINTENANCE
    raise InvalidStateError(
        "Status 'assigned' is set by assigning a driver, not by a status change",
        details={"status": requested.value},
    )
