"""
Dependency providers for FastAPI.

Routes never open database sessions themselves: everything goes through
the row store gateway, and every relationship write goes through the
assignment coordinator. Tests override `get_row_store` and
`get_lock_manager` to run against SQLite with in-process locks.
"""

import logging
from functools import lru_cache

from fastapi import Depends

from backend.app.core.config import settings
from backend.app.db.resilient_store import ResilientRowStore
from backend.app.db.row_store import RowStore, SqlRowStore
from backend.app.db.session import AsyncSessionLocal
from backend.app.domain.fleet.coordinator import AssignmentCoordinator
from backend.app.domain.fleet.directories import DriverDirectory, VehicleDirectory
from backend.app.domain.fleet.maintenance import MaintenanceLedger, MaintenanceTrigger
from backend.app.domain.fleet.views import ViewAssembler
from backend.app.services.entity_locks import EntityLockManager, InProcessLockBackend, RedisLockBackend

logger = logging.getLogger("fleet.dependencies")


@lru_cache
def get_row_store() -> RowStore:
    """Process-wide gateway; the circuit breaker state lives here."""
    return ResilientRowStore(SqlRowStore(AsyncSessionLocal))


@lru_cache
def get_lock_manager() -> EntityLockManager:
    """
    Entity locks for the coordinator.

    The in-process backend only serializes requests served by this process;
    deployments with more than one instance must set LOCK_BACKEND=redis.
    """
    if settings.lock_backend == "redis":
        from backend.app.core.redis_client import redis_client
        backend = RedisLockBackend(redis_client, ttl_seconds=settings.lock_ttl_seconds)
    else:
        backend = InProcessLockBackend()
    logger.info("Entity locks use the %s backend", settings.lock_backend)
    return EntityLockManager(backend, acquire_timeout=settings.lock_acquire_timeout_seconds)


def get_vehicle_directory(store: RowStore = Depends(get_row_store)) -> VehicleDirectory:
    return VehicleDirectory(store)


def get_driver_directory(store: RowStore = Depends(get_row_store)) -> DriverDirectory:
    return DriverDirectory(store)


def get_maintenance_ledger(store: RowStore = Depends(get_row_store)) -> MaintenanceLedger:
    return MaintenanceLedger(store)


def get_view_assembler(
    vehicles: VehicleDirectory = Depends(get_vehicle_directory),
    drivers: DriverDirectory = Depends(get_driver_directory),
) -> ViewAssembler:
    return ViewAssembler(vehicles, drivers)


def get_coordinator(
    store: RowStore = Depends(get_row_store),
    vehicles: VehicleDirectory = Depends(get_vehicle_directory),
    drivers: DriverDirectory = Depends(get_driver_directory),
    ledger: MaintenanceLedger = Depends(get_maintenance_ledger),
    views: ViewAssembler = Depends(get_view_assembler),
    locks: EntityLockManager = Depends(get_lock_manager),
) -> AssignmentCoordinator:
    return AssignmentCoordinator(
        store=store,
        vehicles=vehicles,
        drivers=drivers,
        trigger=MaintenanceTrigger(ledger),
        locks=locks,
        views=views,
    )
