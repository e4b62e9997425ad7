"""
Typed views of fleet rows as returned by the row store.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from backend.app.models.enums import DriverStatus, MaintenanceStatus, VehicleStatus


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VehicleRecord(_Record):
    brand: str
    model: str
    plate: str
    status: VehicleStatus


class DriverRecord(_Record):
    user_id: str
    name: str
    last_name: str
    phone: Optional[str] = None
    license_type: Optional[str] = None
    license_expiry: Optional[date] = None
    status: DriverStatus
    assigned_vehicle_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == DriverStatus.ACTIVE


class MaintenanceEntryRecord(_Record):
    vehicle_id: str
    scheduled_date: datetime
    maintenance_type: str
    description: Optional[str] = None
    status: MaintenanceStatus
