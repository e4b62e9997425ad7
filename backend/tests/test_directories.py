"""
Vehicle and driver directory tests.
"""

import pytest

from backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from backend.app.db.row_store import StaleRowError
from backend.app.models.enums import DriverStatus, VehicleStatus


@pytest.mark.asyncio
async def test_attribute_updates_refuse_relationship_fields(vehicles, drivers, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()

    with pytest.raises(ValueError):
        await vehicles.update(vehicle, {"status": VehicleStatus.ASSIGNED})
    with pytest.raises(ValueError):
        await drivers.update(driver, {"assigned_vehicle_id": vehicle.id})


@pytest.mark.asyncio
async def test_updates_are_version_checked(vehicles, make_vehicle):
    vehicle = await make_vehicle()
    await vehicles.update(vehicle, {"brand": "Scania"})

    with pytest.raises(StaleRowError):
        await vehicles.update(vehicle, {"brand": "DAF"})


@pytest.mark.asyncio
async def test_duplicate_plate_and_user(vehicles, make_vehicle, make_driver):
    await make_vehicle(plate="AAA-111")
    await make_driver(user_id="user-x")

    with pytest.raises(ConflictError):
        await vehicles.create("MAN", "TGX", "AAA-111")
    with pytest.raises(ConflictError):
        await make_driver(user_id="user-x")


@pytest.mark.asyncio
async def test_reverse_lookup(drivers, make_vehicle, make_driver):
    vehicle = await make_vehicle()
    driver = await make_driver()
    await make_driver(status=DriverStatus.INACTIVE)

    assert await drivers.find_by_vehicle(vehicle.id) is None
    await drivers.set_vehicle_reference(driver, vehicle.id)

    assert (await drivers.find_by_vehicle(vehicle.id)).id == driver.id
    assert [d.id for d in await drivers.list_assigned()] == [driver.id]
    assert len(await drivers.list(status=DriverStatus.INACTIVE)) == 1


@pytest.mark.asyncio
async def test_require_missing(vehicles, drivers):
    with pytest.raises(ResourceNotFoundError):
        await vehicles.require("00000000-0000-0000-0000-000000000000")
    with pytest.raises(ResourceNotFoundError):
        await drivers.require("00000000-0000-0000-0000-000000000000")
