"""
Assignment coordinator tests: assign and unassign.

Each test checks the response view and the persisted rows it was read
back from.
"""

import pytest

from backend.app.core.exceptions import ConflictError, InvalidStateError, ResourceNotFoundError
from backend.app.db.row_store import AUDIT_LOGS
from backend.app.models.enums import VehicleStatus
from backend.app.services.audit import AuditAction

MISSING_ID = "00000000-0000-0000-0000-000000000000"


@pytest.mark.asyncio
async def test_assign_available_vehicle(coordinator, vehicles, drivers, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()

    result = await coordinator.assign(vehicle.id, driver.id)

    assert result.warning is None
    assert result.vehicle.status == VehicleStatus.ASSIGNED
    assert result.driver.assigned_vehicle_id == vehicle.id
    assert (await vehicles.get(vehicle.id)).status == VehicleStatus.ASSIGNED
    assert (await drivers.find_by_vehicle(vehicle.id)).id == driver.id


@pytest.mark.asyncio
async def test_assign_is_idempotent(coordinator, vehicles, drivers, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()
    first = await coordinator.assign(vehicle.id, driver.id)

    second = await coordinator.assign(vehicle.id, driver.id)

    assert second.vehicle.version == first.vehicle.version
    assert second.driver.version == first.driver.version
    assert second.vehicle.status == VehicleStatus.ASSIGNED


@pytest.mark.asyncio
async def test_assign_writes_audit_event(coordinator, row_store, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()

    await coordinator.assign(vehicle.id, driver.id)

    events = await row_store.find(AUDIT_LOGS, {"entity_id": vehicle.id, "action": AuditAction.VEHICLE_ASSIGNED})
    assert len(events) == 1
    assert events[0]["meta_data"] == {"driver_id": driver.id, "previous_status": "available"}


@pytest.mark.asyncio
async def test_assign_inactive_driver_is_rejected(coordinator, vehicles, drivers, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver(status="inactive")

    with pytest.raises(InvalidStateError) as exc_info:
        await coordinator.assign(vehicle.id, driver.id)

    assert exc_info.value.status_code == 400
    assert exc_info.value.details["status"] == "inactive"
    assert (await vehicles.get(vehicle.id)).status == VehicleStatus.AVAILABLE
    assert (await drivers.get(driver.id)).assigned_vehicle_id is None


@pytest.mark.asyncio
async def test_driver_holding_another_vehicle_is_rejected(coordinator, vehicles, make_vehicle, make_driver):
    first, second = await make_vehicle(), await make_vehicle()
    driver = await make_driver()
    await coordinator.assign(first.id, driver.id)

    with pytest.raises(ConflictError) as exc_info:
        await coordinator.assign(second.id, driver.id)

    assert exc_info.value.status_code == 400
    assert exc_info.value.details["vehicle_id"] == first.id
    assert (await vehicles.get(second.id)).status == VehicleStatus.AVAILABLE


@pytest.mark.asyncio
async def test_vehicle_held_by_another_driver_is_rejected(coordinator, drivers, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    holder, other = await make_driver(), await make_driver(name="Luis")
    await coordinator.assign(vehicle.id, holder.id)

    with pytest.raises(ConflictError) as exc_info:
        await coordinator.assign(vehicle.id, other.id)

    assert exc_info.value.status_code == 409
    assert (await drivers.find_by_vehicle(vehicle.id)).id == holder.id
    assert (await drivers.get(other.id)).assigned_vehicle_id is None


@pytest.mark.asyncio
async def test_vehicle_in_maintenance_cannot_be_assigned(coordinator, drivers, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()
    await coordinator.set_vehicle_status(vehicle.id, VehicleStatus.MAINTENANCE)

    with pytest.raises(InvalidStateError):
        await coordinator.assign(vehicle.id, driver.id)

    assert (await drivers.get(driver.id)).assigned_vehicle_id is None


@pytest.mark.asyncio
async def test_assign_unknown_records(coordinator, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()

    with pytest.raises(ResourceNotFoundError) as exc_info:
        await coordinator.assign(MISSING_ID, driver.id)
    assert exc_info.value.details["resource"] == "Vehicle"

    with pytest.raises(ResourceNotFoundError) as exc_info:
        await coordinator.assign(vehicle.id, MISSING_ID)
    assert exc_info.value.details["resource"] == "Driver"


@pytest.mark.asyncio
async def test_unassign_releases_vehicle(coordinator, vehicles, drivers, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()
    await coordinator.assign(vehicle.id, driver.id)

    result = await coordinator.unassign(vehicle.id)

    assert result.driver is None
    assert result.vehicle.status == VehicleStatus.AVAILABLE
    assert (await drivers.get(driver.id)).assigned_vehicle_id is None
    assert await drivers.find_by_vehicle(vehicle.id) is None


@pytest.mark.asyncio
async def test_unassign_vehicle_without_driver_is_rejected(coordinator, make_vehicle):
    vehicle = await make_vehicle()

    with pytest.raises(InvalidStateError) as exc_info:
        await coordinator.unassign(vehicle.id)

    assert exc_info.value.message == "Vehicle is not currently assigned"


@pytest.mark.asyncio
async def test_second_unassign_is_rejected(coordinator, vehicles, drivers, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()
    await coordinator.assign(vehicle.id, driver.id)

    first = await coordinator.unassign(vehicle.id)
    assert first.vehicle.status == VehicleStatus.AVAILABLE

    with pytest.raises(InvalidStateError):
        await coordinator.unassign(vehicle.id)

    assert (await vehicles.get(vehicle.id)).status == VehicleStatus.AVAILABLE
    assert (await drivers.get(driver.id)).assigned_vehicle_id is None


@pytest.mark.asyncio
async def test_unassign_during_maintenance_keeps_maintenance(coordinator, vehicles, drivers,
                                                             make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()
    await coordinator.assign(vehicle.id, driver.id)
    await coordinator.set_vehicle_status(vehicle.id, VehicleStatus.MAINTENANCE)

    result = await coordinator.unassign(vehicle.id)

    assert result.vehicle.status == VehicleStatus.MAINTENANCE
    assert (await drivers.get(driver.id)).assigned_vehicle_id is None

    # Leaving maintenance now has no driver to restore
    left = await coordinator.set_vehicle_status(vehicle.id, VehicleStatus.AVAILABLE)
    assert left.vehicle.status == VehicleStatus.AVAILABLE


@pytest.mark.asyncio
async def test_released_driver_can_take_another_vehicle(coordinator, make_vehicle, make_driver):
    first, second = await make_vehicle(), await make_vehicle()
    driver = await make_driver()
    await coordinator.assign(first.id, driver.id)
    await coordinator.unassign(first.id)

    result = await coordinator.assign(second.id, driver.id)

    assert result.driver.assigned_vehicle_id == second.id
