"""
Vehicle Pydantic schemas.

Defines request and response models for vehicle management.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from backend.app.models.enums import VehicleStatus
from backend.app.schemas.common import CamelModel


class VehicleCreate(CamelModel):
    """Schema for registering a new vehicle."""
    brand: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    plate: str = Field(..., min_length=1, max_length=20, description="Globally unique plate number")


class VehicleUpdate(CamelModel):
    """
    Schema for updating a vehicle.

    `driverId` has three meanings: absent leaves the assignment alone,
    null releases the current driver, an id assigns that driver.
    """
    brand: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    plate: Optional[str] = Field(None, min_length=1, max_length=20)
    driver_id: Optional[UUID] = None

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        for field in ("brand", "model", "plate"):
            if field in data and data[field] is None:
                del data[field]
        if data.get("driver_id") is not None:
            data["driver_id"] = str(data["driver_id"])
        return data


class VehicleResponse(CamelModel):
    """Schema for vehicle response."""
    id: str
    brand: str
    model: str
    plate: str
    status: VehicleStatus
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
