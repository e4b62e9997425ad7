"""
Maintenance schedule database model.

Entries are appended when a vehicle enters maintenance.
"""

import uuid
from sqlalchemy import Column, Integer, String, Text, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import MaintenanceStatus, enum_values


class MaintenanceSchedule(Base):
    """Scheduled maintenance entry for a vehicle."""
    __tablename__ = "maintenance_schedules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # No foreign key: ledger history outlives deleted vehicles
    vehicle_id = Column(String(36), nullable=False, index=True)

    scheduled_date = Column(DateTime(timezone=True), nullable=False, index=True)
    maintenance_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)

    status = Column(
        Enum(MaintenanceStatus, name="maintenance_status", values_callable=enum_values),
        default=MaintenanceStatus.PENDING,
        nullable=False
    )

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<MaintenanceSchedule(id={self.id}, vehicle_id={self.vehicle_id}, status='{self.status}')>"
