"""
Centralized Test Configuration.

Every test gets a fresh SQLite file database. NullPool hands each row store
call its own connection, so concurrently running coordinator operations do
not share (and reset) one another's transactions.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool, Pool

from backend.app.main import app
from backend.app.core.dependencies import get_lock_manager, get_row_store
from backend.app.db.resilient_store import ResilientRowStore
from backend.app.db.row_store import SqlRowStore
from backend.app.db.session import Base, build_engine
from backend.app.domain.fleet.coordinator import AssignmentCoordinator
from backend.app.domain.fleet.directories import DriverDirectory, VehicleDirectory
from backend.app.domain.fleet.maintenance import MaintenanceLedger, MaintenanceTrigger
from backend.app.services.entity_locks import EntityLockManager, InProcessLockBackend


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine(tmp_path):
    """Create tables in a per-test database file and dispose the engine afterwards."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'fleet_test.db'}", poolclass=NullPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sql_store(session_factory):
    return SqlRowStore(session_factory)


@pytest.fixture
def row_store(sql_store):
    return ResilientRowStore(sql_store, timeout_seconds=5.0, read_retries=0, backoff_seconds=0)


@pytest.fixture
def lock_manager():
    return EntityLockManager(InProcessLockBackend(), acquire_timeout=2.0)


@pytest.fixture
def vehicles(row_store):
    return VehicleDirectory(row_store)


@pytest.fixture
def drivers(row_store):
    return DriverDirectory(row_store)


@pytest.fixture
def ledger(row_store):
    return MaintenanceLedger(row_store)


@pytest.fixture
def coordinator(row_store, vehicles, drivers, ledger, lock_manager):
    return AssignmentCoordinator(
        store=row_store,
        vehicles=vehicles,
        drivers=drivers,
        trigger=MaintenanceTrigger(ledger),
        locks=lock_manager,
    )


@pytest.fixture
def make_vehicle(vehicles):
    """Factory for registered vehicles with unique plates."""
    counter = {"n": 0}

    async def _make(brand="Volvo", model="FH16", plate=None):
        counter["n"] += 1
        return await vehicles.create(brand, model, plate or f"TST-{counter['n']:04d}")

    return _make


@pytest.fixture
def make_driver(drivers):
    """Factory for driver profiles bound to unique users."""
    counter = {"n": 0}

    async def _make(name="Ana", last_name="Lopez", status="active", user_id=None):
        counter["n"] += 1
        return await drivers.create(
            user_id=user_id or f"user-{counter['n']}",
            name=name,
            last_name=last_name,
            phone="+34 600 000 000",
            license_type="C",
            status=status,
        )

    return _make


@pytest.fixture
async def client(row_store, lock_manager):
    """Async client for testing, wired to the per-test store and locks."""
    app.dependency_overrides[get_row_store] = lambda: row_store
    app.dependency_overrides[get_lock_manager] = lambda: lock_manager
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}
