"""
Driver Pydantic schemas.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from backend.app.models.enums import DriverStatus
from backend.app.schemas.common import CamelModel


class DriverCreate(CamelModel):
    """Schema for creating a driver profile bound to an existing user."""
    user_id: str = Field(..., min_length=1, max_length=36)
    name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    license_type: Optional[str] = Field(None, max_length=50)
    license_expiry: Optional[date] = None
    status: DriverStatus = DriverStatus.ACTIVE


class DriverUpdate(CamelModel):
    """
    Schema for updating a driver.

    `vehicleId`: absent leaves the assignment alone, null releases the
    vehicle, an id assigns that vehicle.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    license_type: Optional[str] = Field(None, max_length=50)
    license_expiry: Optional[date] = None
    status: Optional[DriverStatus] = None
    vehicle_id: Optional[UUID] = None

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        for field in ("name", "last_name", "status"):
            if field in data and data[field] is None:
                del data[field]
        if data.get("vehicle_id") is not None:
            data["vehicle_id"] = str(data["vehicle_id"])
        return data


class DriverResponse(CamelModel):
    """Schema for driver response."""
    id: str
    user_id: str
    name: str
    last_name: str
    phone: Optional[str] = None
    license_type: Optional[str] = None
    license_expiry: Optional[date] = None
    status: DriverStatus
    assigned_vehicle_id: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
