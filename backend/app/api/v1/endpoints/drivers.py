"""
Driver API Endpoints.

Driver profiles and the driver-side view of the vehicle assignment.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from backend.app.core.dependencies import get_coordinator, get_driver_directory, get_row_store
from backend.app.db.row_store import RowStore
from backend.app.domain.fleet.coordinator import AssignmentCoordinator
from backend.app.domain.fleet.directories import DriverDirectory
from backend.app.models.enums import DriverStatus
from backend.app.schemas.assignment import AssignmentResponse
from backend.app.schemas.common import MessageResponse
from backend.app.schemas.driver import DriverCreate, DriverResponse, DriverUpdate
from backend.app.services.audit import AuditAction, log_event

router = APIRouter(prefix="/drivers", tags=["Drivers"])


@router.get("", response_model=List[DriverResponse])
async def list_drivers(
    driver_status: Optional[DriverStatus] = Query(None, alias="status", description="Filter by status"),
    drivers: DriverDirectory = Depends(get_driver_directory),
):
    """List drivers, optionally only active or inactive ones."""
    return [DriverResponse.model_validate(driver) for driver in await drivers.list(status=driver_status)]


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    drivers: DriverDirectory = Depends(get_driver_directory),
    store: RowStore = Depends(get_row_store),
):
    """
    Create a driver profile.

    A user can have only one driver profile (409 otherwise). New drivers
    hold no vehicle; use the assignment endpoints for that.
    """
    driver = await drivers.create(
        user_id=driver_data.user_id,
        name=driver_data.name,
        last_name=driver_data.last_name,
        phone=driver_data.phone,
        license_type=driver_data.license_type,
        license_expiry=driver_data.license_expiry,
        status=driver_data.status,
    )

    await log_event(store, AuditAction.DRIVER_CREATED, "driver", driver.id, {"user_id": driver.user_id})

    return DriverResponse.model_validate(driver)


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: UUID = Path(..., description="Driver ID"),
    drivers: DriverDirectory = Depends(get_driver_directory),
):
    return DriverResponse.model_validate(await drivers.require(str(driver_id)))


@router.put("/{driver_id}", response_model=AssignmentResponse)
async def update_driver(
    driver_id: UUID = Path(..., description="Driver ID"),
    update_data: DriverUpdate = ...,
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """
    Update driver attributes and, through `vehicleId`, its assignment.

    Setting `status` to inactive releases the vehicle the driver holds.
    """
    return await coordinator.update_driver(str(driver_id), update_data.changes())


@router.delete("/{driver_id}", response_model=MessageResponse)
async def delete_driver(
    driver_id: UUID = Path(..., description="Driver ID"),
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """Delete a driver; the vehicle it holds (if any) becomes available."""
    return await coordinator.delete_driver(str(driver_id))
