"""
Audit logging service for tracking fleet assignment and status events.

Provides an append-only trail for operator diagnosis. There is no automatic
reconciliation, so partial failures in particular must end up here.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from backend.app.core.exceptions import AppException
from backend.app.core.observability import get_correlation_id
from backend.app.db.row_store import AUDIT_LOGS, RowStore, RowStoreError

logger = logging.getLogger("fleet.audit")


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    VEHICLE_CREATED = "VEHICLE_CREATED"
    VEHICLE_UPDATED = "VEHICLE_UPDATED"
    VEHICLE_DELETED = "VEHICLE_DELETED"

    DRIVER_CREATED = "DRIVER_CREATED"
    DRIVER_UPDATED = "DRIVER_UPDATED"
    DRIVER_DELETED = "DRIVER_DELETED"

    # Assignment coordinator
    VEHICLE_ASSIGNED = "VEHICLE_ASSIGNED"
    VEHICLE_UNASSIGNED = "VEHICLE_UNASSIGNED"
    VEHICLE_STATUS_CHANGED = "VEHICLE_STATUS_CHANGED"
    MAINTENANCE_SCHEDULED = "MAINTENANCE_SCHEDULED"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"


async def log_event(
    store: RowStore,
    action: str,
    entity_type: str,
    entity_id: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Append an event to the audit log.

    Args:
        store: Row store
        action: Action being recorded (use AuditAction constants)
        entity_type: "vehicle" or "driver"
        entity_id: ID of the record the action concerned
        metadata: Additional context as JSON

    Returns:
        The stored audit row, or None if the audit write failed. The
        business operation has already happened at this point, so a failed
        audit write is logged instead of raised.
    """
    try:
        return await store.insert(AUDIT_LOGS, {
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "meta_data": metadata,
            "correlation_id": get_correlation_id(),
            "timestamp": datetime.now(timezone.utc),
        })
    except (AppException, RowStoreError) as exc:
        logger.error("Audit write failed for %s on %s %s: %s", action, entity_type, entity_id, exc)
        return None


async def get_audit_trail(
    store: RowStore,
    entity_id: str,
    action: Optional[str] = None,
    limit: int = 100
) -> List[Dict[str, Any]]:
    """
    Retrieve the audit trail of one record, most recent first.

    Args:
        store: Row store
        entity_id: Vehicle or driver ID
        action: Filter by action type
        limit: Maximum number of records to return
    """
    filters = {"entity_id": entity_id}
    if action:
        filters["action"] = action
    return await store.find(AUDIT_LOGS, filters, order_by="timestamp", descending=True, limit=limit)
