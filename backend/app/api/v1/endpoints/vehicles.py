"""
Vehicle API Endpoints.

Registration, listing and the relationship operations (assign, unassign,
combined update, status change, deletion). Every relationship write is
delegated to the assignment coordinator.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from backend.app.core.dependencies import (
    get_coordinator,
    get_row_store,
    get_vehicle_directory,
    get_view_assembler,
)
from backend.app.db.row_store import RowStore
from backend.app.domain.fleet.coordinator import AssignmentCoordinator
from backend.app.domain.fleet.directories import VehicleDirectory
from backend.app.domain.fleet.views import ViewAssembler
from backend.app.schemas.assignment import (
    AssignmentRequest,
    AssignmentResponse,
    VehicleDetailResponse,
    VehicleListResponse,
    VehicleStatusResponse,
    VehicleStatusUpdate,
)
from backend.app.schemas.audit import AuditLogResponse
from backend.app.schemas.common import MessageResponse
from backend.app.schemas.vehicle import VehicleCreate, VehicleResponse, VehicleUpdate
from backend.app.services.audit import AuditAction, get_audit_trail, log_event

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.get("", response_model=VehicleListResponse)
async def list_vehicles(
    vehicles: VehicleDirectory = Depends(get_vehicle_directory),
    views: ViewAssembler = Depends(get_view_assembler),
):
    """List all vehicles, each merged with the driver currently holding it."""
    return await views.vehicle_list(await vehicles.list())


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    vehicles: VehicleDirectory = Depends(get_vehicle_directory),
    store: RowStore = Depends(get_row_store),
):
    """
    Register a new vehicle.

    New vehicles are always `available`. Plates are unique (409 on reuse).
    """
    vehicle = await vehicles.create(vehicle_data.brand, vehicle_data.model, vehicle_data.plate)

    await log_event(store, AuditAction.VEHICLE_CREATED, "vehicle", vehicle.id, {"plate": vehicle.plate})

    return VehicleResponse.model_validate(vehicle)


@router.post("/assign", response_model=AssignmentResponse)
async def assign_vehicle(
    assignment: AssignmentRequest,
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """
    Assign a driver to a vehicle, or release the vehicle when `driverId` is null.

    Errors:
        404: Vehicle or driver not found
        400: Driver inactive, driver already holds another vehicle,
             vehicle under maintenance, or (unassign) vehicle not assigned
        409: Vehicle is held by another driver
    """
    vehicle_id = str(assignment.vehicle_id)
    if assignment.driver_id is None:
        return await coordinator.unassign(vehicle_id)
    return await coordinator.assign(vehicle_id, str(assignment.driver_id))


@router.get("/{vehicle_id}", response_model=VehicleDetailResponse)
async def get_vehicle(
    vehicle_id: UUID = Path(..., description="Vehicle ID"),
    vehicles: VehicleDirectory = Depends(get_vehicle_directory),
    views: ViewAssembler = Depends(get_view_assembler),
):
    """Get a vehicle merged with its current driver."""
    vehicle = await vehicles.require(str(vehicle_id))
    return await views.vehicle_detail(vehicle)


@router.put("/{vehicle_id}", response_model=AssignmentResponse)
async def update_vehicle(
    vehicle_id: UUID = Path(..., description="Vehicle ID"),
    update_data: VehicleUpdate = ...,
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """
    Update vehicle attributes and, through `driverId`, its assignment.

    Status is not writable here; use the status endpoint for maintenance.
    """
    return await coordinator.update_vehicle(str(vehicle_id), update_data.changes())


@router.patch("/{vehicle_id}/status", response_model=VehicleStatusResponse)
async def change_vehicle_status(
    vehicle_id: UUID = Path(..., description="Vehicle ID"),
    status_data: VehicleStatusUpdate = ...,
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """
    Move a vehicle into or out of maintenance.

    Entering maintenance records a pending maintenance entry; if that entry
    cannot be recorded the response carries a `warning`.
    """
    maintenance = status_data.maintenance_data
    return await coordinator.set_vehicle_status(
        str(vehicle_id),
        status_data.status,
        scheduled_date=maintenance.scheduled_date if maintenance else None,
        description=maintenance.description if maintenance else None,
    )


@router.delete("/{vehicle_id}", response_model=MessageResponse)
async def delete_vehicle(
    vehicle_id: UUID = Path(..., description="Vehicle ID"),
    coordinator: AssignmentCoordinator = Depends(get_coordinator),
):
    """Delete a vehicle; its driver (if any) is released first."""
    return await coordinator.delete_vehicle(str(vehicle_id))


@router.get("/{vehicle_id}/history", response_model=List[AuditLogResponse])
async def get_vehicle_history(
    vehicle_id: UUID = Path(..., description="Vehicle ID"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of events"),
    vehicles: VehicleDirectory = Depends(get_vehicle_directory),
    store: RowStore = Depends(get_row_store),
):
    """Audit trail of a vehicle, most recent first."""
    await vehicles.require(str(vehicle_id))
    events = await get_audit_trail(store, str(vehicle_id), limit=limit)
    return [AuditLogResponse.model_validate(event) for event in events]
