"""
Maintenance Schedule API Endpoints.

Read-only: entries are created when a vehicle is switched to maintenance.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from backend.app.core.dependencies import get_maintenance_ledger
from backend.app.domain.fleet.maintenance import MaintenanceLedger
from backend.app.schemas.maintenance import MaintenanceEntryResponse

router = APIRouter(prefix="/maintenance-schedules", tags=["Maintenance"])


@router.get("", response_model=List[MaintenanceEntryResponse])
async def list_maintenance_schedules(
    vehicle_id: Optional[UUID] = Query(None, description="Only entries of this vehicle"),
    ledger: MaintenanceLedger = Depends(get_maintenance_ledger),
):
    """List maintenance entries ordered by scheduled date."""
    entries = await ledger.list(vehicle_id=str(vehicle_id) if vehicle_id else None)
    return [MaintenanceEntryResponse.model_validate(entry) for entry in entries]


@router.get("/{entry_id}", response_model=MaintenanceEntryResponse)
async def get_maintenance_schedule(
    entry_id: UUID = Path(..., description="Maintenance entry ID"),
    ledger: MaintenanceLedger = Depends(get_maintenance_ledger),
):
    return MaintenanceEntryResponse.model_validate(await ledger.get(str(entry_id)))
