"""
Fleet enumerations.

Defines the status vocabularies of vehicles, drivers and maintenance entries.
"""

import enum


class VehicleStatus(str, enum.Enum):
    """
    Vehicle status enumeration.

    Statuses:
        AVAILABLE: No driver holds the vehicle
        ASSIGNED: Exactly one driver holds the vehicle
        MAINTENANCE: Taken out of service by an explicit request
    """
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    MAINTENANCE = "maintenance"


class DriverStatus(str, enum.Enum):
    """Driver status enumeration."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class MaintenanceStatus(str, enum.Enum):
    """Maintenance schedule entry status enumeration."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def enum_values(enum_cls):
    """Persist enum values (lowercase strings) rather than member names."""
    return [member.value for member in enum_cls]
