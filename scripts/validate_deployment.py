"""
Pre-Deploy and Smoke Test Script.

Validates the running environment and executes a full smoke test against
the configured database:
1. Health Check
2. Vehicle + Driver registration
3. Assign -> Maintenance -> Leave maintenance -> Unassign
4. Cleanup
"""

import sys
import uuid

from fastapi.testclient import TestClient
from backend.app.main import app


def print_step(step, msg):
    print(f"[{step}] {msg}")

def fail(msg):
    print(f"❌ FAILURE: {msg}")
    sys.exit(1)

def success(msg):
    print(f"✅ {msg}")

def expect(response, status_code, what):
    if response.status_code != status_code:
        fail(f"{what}: {response.status_code} {response.text}")
    return response.json()

def main():
    print("🚀 Starting Deployment Validation...")

    # TestClient as a context manager runs the lifespan (table creation)
    with TestClient(app) as client:
        # 1. Health Check
        print_step("PRE-DEPLOY", "Checking /health...")
        health = expect(client.get("/health"), 200, "Health check")
        success(f"Health: {health}")

        # 2. Registration
        print_step("SMOKE", "Registering smoke-test vehicle and driver...")
        suffix = uuid.uuid4().hex[:6].upper()
        vehicle = expect(
            client.post("/v1/vehicles", json={"brand": "Smoke", "model": "Test", "plate": f"SMK-{suffix}"}),
            201, "Vehicle creation"
        )
        driver = expect(
            client.post("/v1/drivers", json={"userId": f"smoke-{suffix}", "name": "Smoke", "lastName": "Test"}),
            201, "Driver creation"
        )

        # 3. Relationship flow
        print_step("SMOKE", "Running assign -> maintenance -> unassign flow...")
        try:
            assigned = expect(
                client.post("/v1/vehicles/assign", json={"vehicleId": vehicle["id"], "driverId": driver["id"]}),
                200, "Assignment"
            )
            if assigned["vehicle"]["status"] != "assigned":
                fail(f"Vehicle not assigned: {assigned}")

            entered = expect(
                client.patch(f"/v1/vehicles/{vehicle['id']}/status", json={"status": "maintenance"}),
                200, "Enter maintenance"
            )
            if entered.get("warning"):
                print(f"⚠️ Maintenance entry warning: {entered['warning']}")

            left = expect(
                client.patch(f"/v1/vehicles/{vehicle['id']}/status", json={"status": "available"}),
                200, "Leave maintenance"
            )
            if left["vehicle"]["status"] != "assigned":
                fail(f"Assignment not restored after maintenance: {left}")

            released = expect(
                client.post("/v1/vehicles/assign", json={"vehicleId": vehicle["id"], "driverId": None}),
                200, "Unassignment"
            )
            if released["vehicle"]["status"] != "available":
                fail(f"Vehicle not released: {released}")
            success("Relationship flow consistent")
        finally:
            # 4. Cleanup
            print_step("CLEANUP", "Removing smoke-test records...")
            client.delete(f"/v1/drivers/{driver['id']}")
            client.delete(f"/v1/vehicles/{vehicle['id']}")

    success("Deployment Validation Passed!")

if __name__ == "__main__":
    main()
