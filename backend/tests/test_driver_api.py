"""
Integration tests for the driver endpoints.
"""

import pytest


async def _create_driver(client, user_id="user-1", **overrides):
    payload = {"userId": user_id, "name": "Ana", "lastName": "Lopez", "licenseType": "C"}
    payload.update(overrides)
    response = await client.post("/v1/drivers", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def _create_vehicle(client, plate):
    response = await client.post("/v1/vehicles", json={"brand": "Volvo", "model": "FH16", "plate": plate})
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_driver_defaults(client):
    driver = await _create_driver(client)

    assert driver["status"] == "active"
    assert driver["assignedVehicleId"] is None
    assert driver["userId"] == "user-1"


@pytest.mark.asyncio
async def test_one_profile_per_user(client):
    await _create_driver(client)

    response = await client.post("/v1/drivers", json={"userId": "user-1", "name": "Otra", "lastName": "Vez"})

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_drivers_by_status(client):
    await _create_driver(client, "user-1")
    await _create_driver(client, "user-2", status="inactive")

    everyone = await client.get("/v1/drivers")
    inactive = await client.get("/v1/drivers", params={"status": "inactive"})

    assert len(everyone.json()) == 2
    assert [driver["userId"] for driver in inactive.json()] == ["user-2"]


@pytest.mark.asyncio
async def test_get_driver_not_found(client):
    response = await client.get("/v1/drivers/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_driver_takes_vehicle(client):
    driver = await _create_driver(client)
    vehicle = await _create_vehicle(client, "1111-AAA")

    response = await client.put(f"/v1/drivers/{driver['id']}", json={"phone": "+34 611", "vehicleId": vehicle["id"]})

    assert response.status_code == 200
    data = response.json()
    assert data["driver"]["phone"] == "+34 611"
    assert data["driver"]["assignedVehicleId"] == vehicle["id"]
    assert data["vehicle"]["status"] == "assigned"


@pytest.mark.asyncio
async def test_update_driver_vehicle_taken_is_conflict(client):
    holder = await _create_driver(client, "user-1")
    driver = await _create_driver(client, "user-2")
    vehicle = await _create_vehicle(client, "1111-AAA")
    await client.post("/v1/vehicles/assign", json={"vehicleId": vehicle["id"], "driverId": holder["id"]})

    response = await client.put(f"/v1/drivers/{driver['id']}", json={"vehicleId": vehicle["id"]})

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_deactivate_driver_frees_vehicle(client):
    driver = await _create_driver(client)
    vehicle = await _create_vehicle(client, "1111-AAA")
    await client.post("/v1/vehicles/assign", json={"vehicleId": vehicle["id"], "driverId": driver["id"]})

    response = await client.put(f"/v1/drivers/{driver['id']}", json={"status": "inactive"})

    assert response.status_code == 200
    assert response.json()["driver"]["assignedVehicleId"] is None
    assert (await client.get(f"/v1/vehicles/{vehicle['id']}")).json()["status"] == "available"


@pytest.mark.asyncio
async def test_delete_driver_frees_vehicle(client):
    driver = await _create_driver(client)
    vehicle = await _create_vehicle(client, "1111-AAA")
    await client.post("/v1/vehicles/assign", json={"vehicleId": vehicle["id"], "driverId": driver["id"]})

    response = await client.delete(f"/v1/drivers/{driver['id']}")

    assert response.status_code == 200
    assert response.json()["message"] == "Driver deleted successfully"
    assert (await client.get(f"/v1/vehicles/{vehicle['id']}")).json()["status"] == "available"
    assert (await client.get(f"/v1/drivers/{driver['id']}")).status_code == 404
