"""
Database seeding script for a demo fleet.

Creates a handful of vehicles and drivers and assigns some of them through
the assignment coordinator, so the seeded data already satisfies every
relationship rule. Run this script after the database is set up.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.core.dependencies import get_lock_manager, get_row_store
from backend.app.db.session import Base, engine
from backend.app.domain.fleet.coordinator import AssignmentCoordinator
from backend.app.domain.fleet.directories import DriverDirectory, VehicleDirectory
from backend.app.domain.fleet.maintenance import MaintenanceLedger, MaintenanceTrigger
from backend.app.models.enums import VehicleStatus

VEHICLES = [
    ("Volvo", "FH16", "1234-ABC"),
    ("Scania", "R450", "5678-DEF"),
    ("MAN", "TGX", "9012-GHI"),
]

DRIVERS = [
    ("seed-user-1", "Ana", "Lopez", "C+E"),
    ("seed-user-2", "Luis", "Gil", "C"),
]


async def seed_fleet():
    """
    Seed a demo fleet.

    Creates:
    - 3 vehicles (one assigned, one in maintenance, one available)
    - 2 drivers (one holding a vehicle)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    store = get_row_store()
    vehicles = VehicleDirectory(store)
    drivers = DriverDirectory(store)
    coordinator = AssignmentCoordinator(
        store=store,
        vehicles=vehicles,
        drivers=drivers,
        trigger=MaintenanceTrigger(MaintenanceLedger(store)),
        locks=get_lock_manager(),
    )

    print("🌱 Starting fleet seeding...")

    if await vehicles.find_by_plate(VEHICLES[0][2]):
        print("ℹ️  Demo fleet already exists, skipping seeding")
        await engine.dispose()
        return

    created_vehicles = []
    for brand, model, plate in VEHICLES:
        vehicle = await vehicles.create(brand, model, plate)
        created_vehicles.append(vehicle)
        print(f"✅ Created vehicle {plate} ({brand} {model})")

    created_drivers = []
    for user_id, name, last_name, license_type in DRIVERS:
        driver = await drivers.create(user_id=user_id, name=name, last_name=last_name, license_type=license_type)
        created_drivers.append(driver)
        print(f"✅ Created driver {name} {last_name}")

    await coordinator.assign(created_vehicles[0].id, created_drivers[0].id)
    print(f"✅ Assigned {created_vehicles[0].plate} to {created_drivers[0].name}")

    await coordinator.set_vehicle_status(created_vehicles[1].id, VehicleStatus.MAINTENANCE)
    print(f"✅ Sent {created_vehicles[1].plate} to maintenance")

    print("\n🎉 Fleet seeding completed successfully!")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_fleet())
