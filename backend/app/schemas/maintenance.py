"""
Maintenance schedule schemas.

Entries are returned in their persisted snake_case shape.
"""

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from backend.app.models.enums import MaintenanceStatus
from backend.app.schemas.common import CamelModel


class MaintenanceData(CamelModel):
    """Optional details for the entry created when a vehicle enters maintenance."""
    scheduled_date: Optional[Union[datetime, date]] = None
    description: Optional[str] = Field(None, max_length=1000)


class MaintenanceEntryResponse(BaseModel):
    """Schema for maintenance schedule entry response."""
    id: str
    vehicle_id: str
    scheduled_date: datetime
    maintenance_type: str
    description: Optional[str] = None
    status: MaintenanceStatus
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
