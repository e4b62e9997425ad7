"""
Assignment and status-change schemas.

Every coordinator response is a merged view of the vehicle and its driver
read back after the writes.
"""

from typing import List, Optional
from uuid import UUID

from pydantic import Field

from backend.app.models.enums import VehicleStatus
from backend.app.schemas.common import CamelModel, OperationWarning
from backend.app.schemas.driver import DriverResponse
from backend.app.schemas.maintenance import MaintenanceData, MaintenanceEntryResponse
from backend.app.schemas.vehicle import VehicleResponse


class AssignmentRequest(CamelModel):
    """Assign (`driverId` set) or unassign (`driverId` null) a vehicle."""
    vehicle_id: UUID
    driver_id: Optional[UUID] = Field(..., description="Driver to assign, or null to unassign")


class AssignmentResponse(CamelModel):
    """Merged vehicle + driver view."""
    vehicle: Optional[VehicleResponse] = None
    driver: Optional[DriverResponse] = None
    warning: Optional[OperationWarning] = None


class VehicleDetailResponse(VehicleResponse):
    """Vehicle with the driver currently holding it."""
    driver: Optional[DriverResponse] = None


class VehicleStatusUpdate(CamelModel):
    """Explicit status change request."""
    status: VehicleStatus
    maintenance_data: Optional[MaintenanceData] = None


class VehicleStatusResponse(CamelModel):
    vehicle: VehicleResponse
    maintenance: Optional[MaintenanceEntryResponse] = None
    warning: Optional[OperationWarning] = None


class VehicleListResponse(CamelModel):
    vehicles: List[VehicleDetailResponse]
    total: int
