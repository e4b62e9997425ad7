"""
Vehicle and driver directories.

Thin owners of the `vehicles` and `drivers` collections over the row store.
Relationship fields (vehicle status, driver's assigned vehicle) can only be
written through the keyword-only parameters and methods documented as
coordinator-only; attribute updates refuse them.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from backend.app.db.row_store import DRIVERS, NOT_NULL, VEHICLES, DuplicateRowError, RowStore
from backend.app.domain.fleet.records import DriverRecord, VehicleRecord
from backend.app.models.enums import DriverStatus, VehicleStatus

logger = logging.getLogger("fleet.directories")

VEHICLE_ATTRIBUTES = ("brand", "model", "plate")
DRIVER_ATTRIBUTES = ("name", "last_name", "phone", "license_type", "license_expiry", "status")


def _check_fields(changes: Mapping[str, Any], allowed: tuple, entity: str) -> Dict[str, Any]:
    unknown = set(changes) - set(allowed)
    if unknown:
        raise ValueError(f"{entity} fields not writable here: {', '.join(sorted(unknown))}")
    return dict(changes)


class VehicleDirectory:
    """Vehicle records."""

    def __init__(self, store: RowStore):
        self.store = store

    async def get(self, vehicle_id: str) -> Optional[VehicleRecord]:
        row = await self.store.get(VEHICLES, vehicle_id)
        return VehicleRecord.model_validate(row) if row else None

    async def require(self, vehicle_id: str) -> VehicleRecord:
        vehicle = await self.get(vehicle_id)
        if vehicle is None:
            raise ResourceNotFoundError("Vehicle", vehicle_id)
        return vehicle

    async def list(self) -> List[VehicleRecord]:
        rows = await self.store.find(VEHICLES, order_by="created_at")
        return [VehicleRecord.model_validate(row) for row in rows]

    async def find_by_plate(self, plate: str) -> Optional[VehicleRecord]:
        rows = await self.store.find(VEHICLES, {"plate": plate}, limit=1)
        return VehicleRecord.model_validate(rows[0]) if rows else None

    async def ensure_plate_available(self, plate: str, exclude_id: Optional[str] = None) -> None:
        existing = await self.find_by_plate(plate)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(
                "Vehicle with this plate already exists",
                details={"plate": plate, "vehicle_id": existing.id}
            )

    async def create(self, brand: str, model: str, plate: str) -> VehicleRecord:
        """Register a vehicle; new vehicles are always available."""
        await self.ensure_plate_available(plate)
        try:
            row = await self.store.insert(VEHICLES, {
                "brand": brand,
                "model": model,
                "plate": plate,
                "status": VehicleStatus.AVAILABLE,
            })
        except DuplicateRowError as exc:
            raise ConflictError("Vehicle with this plate already exists", details={"plate": plate}) from exc
        return VehicleRecord.model_validate(row)

    async def update(
        self,
        vehicle: VehicleRecord,
        attributes: Optional[Mapping[str, Any]] = None,
        *,
        status: Optional[VehicleStatus] = None,
    ) -> VehicleRecord:
        """
        Versioned write of vehicle attributes.

        `status` is coordinator-only. Raises StaleRowError if `vehicle` is
        no longer the current version.
        """
        values = _check_fields(attributes or {}, VEHICLE_ATTRIBUTES, "Vehicle")
        if status is not None:
            values["status"] = VehicleStatus(status)
        row = await self.store.update(VEHICLES, vehicle.id, values, expected_version=vehicle.version)
        return VehicleRecord.model_validate(row)

    async def delete(self, vehicle: VehicleRecord) -> None:
        await self.store.delete(VEHICLES, vehicle.id, expected_version=vehicle.version)


class DriverDirectory:
    """Driver records, including the reverse lookup from vehicle to driver."""

    def __init__(self, store: RowStore):
        self.store = store

    async def get(self, driver_id: str) -> Optional[DriverRecord]:
        row = await self.store.get(DRIVERS, driver_id)
        return DriverRecord.model_validate(row) if row else None

    async def require(self, driver_id: str) -> DriverRecord:
        driver = await self.get(driver_id)
        if driver is None:
            raise ResourceNotFoundError("Driver", driver_id)
        return driver

    async def list(self, status: Optional[DriverStatus] = None) -> List[DriverRecord]:
        filters = {"status": DriverStatus(status)} if status else None
        rows = await self.store.find(DRIVERS, filters, order_by="created_at")
        return [DriverRecord.model_validate(row) for row in rows]

    async def list_assigned(self) -> List[DriverRecord]:
        rows = await self.store.find(DRIVERS, {"assigned_vehicle_id": NOT_NULL})
        return [DriverRecord.model_validate(row) for row in rows]

    async def find_by_vehicle(self, vehicle_id: str) -> Optional[DriverRecord]:
        """Driver currently referencing `vehicle_id`, if any."""
        rows = await self.store.find(DRIVERS, {"assigned_vehicle_id": vehicle_id})
        if len(rows) > 1:
            # Only possible if the unique index is missing from the deployed schema
            logger.error("Vehicle %s is referenced by %d drivers", vehicle_id, len(rows))
        return DriverRecord.model_validate(rows[0]) if rows else None

    async def create(self, user_id: str, name: str, last_name: str, phone: Optional[str] = None,
                     license_type: Optional[str] = None, license_expiry=None,
                     status: DriverStatus = DriverStatus.ACTIVE) -> DriverRecord:
        """Create a driver profile for a user; a user has at most one."""
        existing = await self.store.find(DRIVERS, {"user_id": user_id}, limit=1)
        if existing:
            raise ConflictError(
                "This user already has a driver profile",
                details={"user_id": user_id, "driver_id": existing[0]["id"]}
            )
        try:
            row = await self.store.insert(DRIVERS, {
                "user_id": user_id,
                "name": name,
                "last_name": last_name,
                "phone": phone,
                "license_type": license_type,
                "license_expiry": license_expiry,
                "status": DriverStatus(status),
                "assigned_vehicle_id": None,
            })
        except DuplicateRowError as exc:
            raise ConflictError("This user already has a driver profile", details={"user_id": user_id}) from exc
        return DriverRecord.model_validate(row)

    async def update(self, driver: DriverRecord, attributes: Mapping[str, Any]) -> DriverRecord:
        """Versioned write of driver attributes; never touches the vehicle reference."""
        values = _check_fields(attributes, DRIVER_ATTRIBUTES, "Driver")
        if "status" in values:
            values["status"] = DriverStatus(values["status"])
        row = await self.store.update(DRIVERS, driver.id, values, expected_version=driver.version)
        return DriverRecord.model_validate(row)

    async def set_vehicle_reference(self, driver: DriverRecord, vehicle_id: Optional[str]) -> DriverRecord:
        """
        Coordinator-only: point `driver` at `vehicle_id` (or clear it).

        Raises DuplicateRowError if another driver already references the vehicle.
        """
        row = await self.store.update(
            DRIVERS, driver.id, {"assigned_vehicle_id": vehicle_id}, expected_version=driver.version
        )
        return DriverRecord.model_validate(row)

    async def delete(self, driver: DriverRecord) -> None:
        await self.store.delete(DRIVERS, driver.id, expected_version=driver.version)
