"""
Audit Log Database Model.

Tracks assignment and status events for operator diagnosis.
"""

import uuid
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking fleet events.

    Events logged:
    - VEHICLE_ASSIGNED / VEHICLE_UNASSIGNED
    - VEHICLE_STATUS_CHANGED / MAINTENANCE_SCHEDULED
    - VEHICLE_* / DRIVER_* create, update and delete
    - PARTIAL_FAILURE (no automatic reconciliation exists)
    """
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # Which record it was performed on
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(36), nullable=False, index=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # Request correlation for log lookup
    correlation_id = Column(String(64), nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
