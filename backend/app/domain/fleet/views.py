"""
Response assembly.

Merges vehicle and driver records into the views returned by the API. The
coordinator calls these after its writes, so what a caller sees is always
read back from the store rather than patched together from the write
results.
"""

from typing import Dict, List, Optional

from backend.app.domain.fleet.directories import DriverDirectory, VehicleDirectory
from backend.app.domain.fleet.records import DriverRecord, MaintenanceEntryRecord, VehicleRecord
from backend.app.schemas.assignment import (
    AssignmentResponse,
    VehicleDetailResponse,
    VehicleListResponse,
    VehicleStatusResponse,
)
from backend.app.schemas.common import OperationWarning
from backend.app.schemas.driver import DriverResponse
from backend.app.schemas.maintenance import MaintenanceEntryResponse
from backend.app.schemas.vehicle import VehicleResponse


def vehicle_view(vehicle: Optional[VehicleRecord]) -> Optional[VehicleResponse]:
    return VehicleResponse.model_validate(vehicle) if vehicle else None


def driver_view(driver: Optional[DriverRecord]) -> Optional[DriverResponse]:
    return DriverResponse.model_validate(driver) if driver else None


def maintenance_view(entry: Optional[MaintenanceEntryRecord]) -> Optional[MaintenanceEntryResponse]:
    return MaintenanceEntryResponse.model_validate(entry) if entry else None


def detail_view(vehicle: VehicleRecord, driver: Optional[DriverRecord]) -> VehicleDetailResponse:
    return VehicleDetailResponse.model_validate(
        {**vehicle.model_dump(), "driver": driver_view(driver)}
    )


class ViewAssembler:
    """Builds merged views from fresh directory reads."""

    def __init__(self, vehicles: VehicleDirectory, drivers: DriverDirectory):
        self.vehicles = vehicles
        self.drivers = drivers

    async def pair(self, vehicle_id: Optional[str], driver_id: Optional[str],
                   warning: Optional[OperationWarning] = None) -> AssignmentResponse:
        """Re-read a specific vehicle and driver (either may be None)."""
        vehicle = await self.vehicles.get(vehicle_id) if vehicle_id else None
        driver = await self.drivers.get(driver_id) if driver_id else None
        return AssignmentResponse(vehicle=vehicle_view(vehicle), driver=driver_view(driver), warning=warning)

    async def for_vehicle(self, vehicle_id: str, warning: Optional[OperationWarning] = None) -> AssignmentResponse:
        """Re-read a vehicle and whichever driver references it now."""
        vehicle = await self.vehicles.get(vehicle_id)
        driver = await self.drivers.find_by_vehicle(vehicle_id)
        return AssignmentResponse(vehicle=vehicle_view(vehicle), driver=driver_view(driver), warning=warning)

    async def for_driver(self, driver_id: str, warning: Optional[OperationWarning] = None) -> AssignmentResponse:
        """Re-read a driver and the vehicle it references now."""
        driver = await self.drivers.get(driver_id)
        vehicle = None
        if driver is not None and driver.assigned_vehicle_id:
            vehicle = await self.vehicles.get(driver.assigned_vehicle_id)
        return AssignmentResponse(vehicle=vehicle_view(vehicle), driver=driver_view(driver), warning=warning)

    async def vehicle_detail(self, vehicle: VehicleRecord) -> VehicleDetailResponse:
        return detail_view(vehicle, await self.drivers.find_by_vehicle(vehicle.id))

    async def vehicle_list(self, vehicles: List[VehicleRecord]) -> VehicleListResponse:
        """One driver query for the whole list instead of one per vehicle."""
        holders: Dict[str, DriverRecord] = {
            driver.assigned_vehicle_id: driver for driver in await self.drivers.list_assigned()
        }
        return VehicleListResponse(
            vehicles=[detail_view(vehicle, holders.get(vehicle.id)) for vehicle in vehicles],
            total=len(vehicles),
        )

    @staticmethod
    def status_change(vehicle: VehicleRecord, maintenance: Optional[MaintenanceEntryRecord] = None,
                      warning: Optional[OperationWarning] = None) -> VehicleStatusResponse:
        return VehicleStatusResponse(
            vehicle=vehicle_view(vehicle),
            maintenance=maintenance_view(maintenance),
            warning=warning,
        )
