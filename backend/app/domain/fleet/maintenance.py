"""
Maintenance ledger and trigger.

The ledger is an append/list store of scheduled maintenance entries. The
trigger is what the assignment coordinator calls when a vehicle enters
maintenance: it appends one `pending` entry and reports failures to the
caller without retrying.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import List, Optional, Union

from backend.app.core.config import settings
from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.db.row_store import MAINTENANCE_SCHEDULES, RowStore
from backend.app.domain.fleet.records import MaintenanceEntryRecord
from backend.app.models.enums import MaintenanceStatus

logger = logging.getLogger("fleet.maintenance")


class MaintenanceLedger:
    """Scheduled maintenance entries."""

    def __init__(self, store: RowStore):
        self.store = store

    async def append(
        self,
        vehicle_id: str,
        scheduled_date: datetime,
        maintenance_type: str,
        description: Optional[str],
        status: MaintenanceStatus = MaintenanceStatus.PENDING,
    ) -> MaintenanceEntryRecord:
        row = await self.store.insert(MAINTENANCE_SCHEDULES, {
            "vehicle_id": vehicle_id,
            "scheduled_date": scheduled_date,
            "maintenance_type": maintenance_type,
            "description": description,
            "status": MaintenanceStatus(status),
        })
        return MaintenanceEntryRecord.model_validate(row)

    async def list(self, vehicle_id: Optional[str] = None) -> List[MaintenanceEntryRecord]:
        filters = {"vehicle_id": vehicle_id} if vehicle_id else None
        rows = await self.store.find(MAINTENANCE_SCHEDULES, filters, order_by="scheduled_date")
        return [MaintenanceEntryRecord.model_validate(row) for row in rows]

    async def get(self, entry_id: str) -> MaintenanceEntryRecord:
        row = await self.store.get(MAINTENANCE_SCHEDULES, entry_id)
        if row is None:
            raise ResourceNotFoundError("Maintenance schedule", entry_id)
        return MaintenanceEntryRecord.model_validate(row)


def _as_datetime(value: Union[datetime, date, None]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


class MaintenanceTrigger:
    """Creates the maintenance entry that accompanies a switch to maintenance."""

    def __init__(self, ledger: MaintenanceLedger, maintenance_type: str = None, default_description: str = None):
        self.ledger = ledger
        self.maintenance_type = maintenance_type or settings.maintenance_default_type
        self.default_description = default_description or settings.maintenance_default_description

    async def schedule(
        self,
        vehicle_id: str,
        scheduled_date: Union[datetime, date, None] = None,
        description: Optional[str] = None,
    ) -> MaintenanceEntryRecord:
        """
        Append a pending maintenance entry for `vehicle_id`.

        Args:
            vehicle_id: Vehicle entering maintenance
            scheduled_date: When the work is planned (defaults to now)
            description: Free text (defaults to "Scheduled maintenance")

        Returns:
            The created entry

        Raises:
            UpstreamStoreError: If the ledger write fails (no retry)
        """
        entry = await self.ledger.append(
            vehicle_id=vehicle_id,
            scheduled_date=_as_datetime(scheduled_date),
            maintenance_type=self.maintenance_type,
            description=description or self.default_description,
        )
        logger.info("Maintenance entry %s scheduled for vehicle %s", entry.id, vehicle_id)
        return entry
