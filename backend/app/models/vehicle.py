"""
Vehicle database model.

Vehicles are registered with identification details; their status is
driven by the assignment coordinator.
"""

import uuid
from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import VehicleStatus, enum_values


class Vehicle(Base):
    """
    Vehicle model.

    `version` is the optimistic concurrency token: every update must name
    the version it read and increments it.
    """
    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Vehicle identification
    brand = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    plate = Column(String(20), unique=True, nullable=False, index=True)

    # Lifecycle (written by the assignment coordinator only)
    status = Column(
        Enum(VehicleStatus, name="vehicle_status", values_callable=enum_values),
        default=VehicleStatus.AVAILABLE,
        nullable=False,
        index=True
    )

    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.plate}', status='{self.status}')>"
