"""
Driver database model.

A driver profile is bound to an external user identity and may hold
at most one vehicle.
"""

import uuid
from sqlalchemy import Column, Integer, String, Date, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import DriverStatus, enum_values


class Driver(Base):
    """
    Driver model.

    `assigned_vehicle_id` is unique: the store itself refuses a second
    driver referencing the same vehicle (NULLs never collide).
    """
    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # External user identity (one driver profile per user)
    user_id = Column(String(36), unique=True, nullable=False, index=True)

    # Personal details
    name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    license_type = Column(String(50), nullable=True)
    license_expiry = Column(Date, nullable=True)

    status = Column(
        Enum(DriverStatus, name="driver_status", values_callable=enum_values),
        default=DriverStatus.ACTIVE,
        nullable=False,
        index=True
    )

    # Relationship (written by the assignment coordinator only)
    assigned_vehicle_id = Column(
        String(36),
        ForeignKey("vehicles.id"),
        unique=True,
        nullable=True,
        index=True
    )

    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.name} {self.last_name}', vehicle={self.assigned_vehicle_id})>"
