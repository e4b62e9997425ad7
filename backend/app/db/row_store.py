"""
Row store client.

The fleet collections live in a relational store that is only ever used
through single-row, non-transactional operations: get-by-id, get-by-filter,
insert, update and delete. Each call opens its own session and commits on
its own, so atomicity holds per row and per call only.
"""

import abc
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import Table, delete as sa_delete, insert as sa_insert, select, update as sa_update
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.models.audit_log import AuditLog
from backend.app.models.driver import Driver
from backend.app.models.maintenance_schedule import MaintenanceSchedule
from backend.app.models.vehicle import Vehicle


VEHICLES = "vehicles"
DRIVERS = "drivers"
MAINTENANCE_SCHEDULES = "maintenance_schedules"
AUDIT_LOGS = "audit_logs"

# Filter value matching any non-NULL column value
NOT_NULL = object()

Row = Dict[str, Any]


class RowStoreError(Exception):
    """Base class for row store failures."""

    def __init__(self, message: str, collection: str = None, row_id: Any = None):
        self.collection = collection
        self.row_id = row_id
        super().__init__(message)


class RowStoreUnavailableError(RowStoreError):
    """Transient transport failure (connection lost, database unreachable)."""


class RowNotFoundError(RowStoreError):
    """The addressed row does not exist."""


class StaleRowError(RowStoreError):
    """The row's version no longer matches the version the writer read."""

    def __init__(self, collection: str, row_id: Any, expected_version: int, actual_version: int):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{collection} row {row_id} is at version {actual_version}, expected {expected_version}",
            collection=collection,
            row_id=row_id,
        )


class DuplicateRowError(RowStoreError):
    """A unique constraint rejected the write."""


class RowStore(abc.ABC):
    """Single-row operations over named collections."""

    @abc.abstractmethod
    async def get(self, collection: str, row_id: Any) -> Optional[Row]:
        """Return the row with `row_id`, or None."""

    @abc.abstractmethod
    async def find(
        self,
        collection: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """Return rows whose columns equal `filters` (None means IS NULL, NOT_NULL means IS NOT NULL)."""

    @abc.abstractmethod
    async def insert(self, collection: str, values: Mapping[str, Any]) -> Row:
        """Insert one row and return it as stored."""

    @abc.abstractmethod
    async def update(
        self,
        collection: str,
        row_id: Any,
        values: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> Row:
        """
        Update one row and return it as stored.

        When `expected_version` is given the write only applies if the row is
        still at that version; the stored version is always incremented.
        """

    @abc.abstractmethod
    async def delete(self, collection: str, row_id: Any, expected_version: Optional[int] = None) -> None:
        """Delete one row."""


class SqlRowStore(RowStore):
    """
    Row store over SQLAlchemy async sessions.

    Every call runs in its own short transaction; nothing spans two calls.
    """

    def __init__(self, session_factory: async_sessionmaker, tables: Optional[Mapping[str, Table]] = None):
        self._session_factory = session_factory
        self._tables = dict(tables or default_tables())

    def _table(self, collection: str) -> Table:
        try:
            return self._tables[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    @asynccontextmanager
    async def _transaction(self, collection: str, row_id: Any = None):
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except RowStoreError:
            raise
        except IntegrityError as exc:
            raise DuplicateRowError(str(exc.orig), collection=collection, row_id=row_id) from exc
        except (OperationalError, InterfaceError) as exc:
            raise RowStoreUnavailableError(str(exc), collection=collection, row_id=row_id) from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                raise RowStoreUnavailableError(str(exc), collection=collection, row_id=row_id) from exc
            raise RowStoreError(str(exc), collection=collection, row_id=row_id) from exc
        except (ConnectionError, OSError) as exc:
            raise RowStoreUnavailableError(str(exc), collection=collection, row_id=row_id) from exc
        except SQLAlchemyError as exc:
            raise RowStoreError(str(exc), collection=collection, row_id=row_id) from exc

    @staticmethod
    async def _select_one(session: AsyncSession, table: Table, row_id: Any) -> Optional[Row]:
        result = await session.execute(select(table).where(table.c.id == row_id))
        row = result.first()
        return dict(row._mapping) if row is not None else None

    def _conditions(self, table: Table, filters: Mapping[str, Any]) -> Iterable:
        for column, value in filters.items():
            if value is None:
                yield table.c[column].is_(None)
            elif value is NOT_NULL:
                yield table.c[column].is_not(None)
            else:
                yield table.c[column] == value

    async def get(self, collection: str, row_id: Any) -> Optional[Row]:
        table = self._table(collection)
        async with self._transaction(collection, row_id) as session:
            return await self._select_one(session, table, row_id)

    async def find(self, collection, filters=None, order_by=None, descending=False, limit=None) -> List[Row]:
        table = self._table(collection)
        stmt = select(table).where(*self._conditions(table, filters or {}))
        if order_by:
            column = table.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit:
            stmt = stmt.limit(limit)

        async with self._transaction(collection) as session:
            result = await session.execute(stmt)
            return [dict(row._mapping) for row in result.all()]

    async def insert(self, collection: str, values: Mapping[str, Any]) -> Row:
        table = self._table(collection)
        values = dict(values)
        values.setdefault("id", str(uuid.uuid4()))

        async with self._transaction(collection, values["id"]) as session:
            await session.execute(sa_insert(table).values(**values))
            return await self._select_one(session, table, values["id"])

    async def update(self, collection, row_id, values, expected_version=None) -> Row:
        table = self._table(collection)
        stmt = sa_update(table).where(table.c.id == row_id)
        if expected_version is not None:
            stmt = stmt.where(table.c.version == expected_version)
        stmt = stmt.values(**dict(values), version=table.c.version + 1)

        async with self._transaction(collection, row_id) as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await self._raise_missing_or_stale(session, table, collection, row_id, expected_version)
            return await self._select_one(session, table, row_id)

    async def delete(self, collection, row_id, expected_version=None) -> None:
        table = self._table(collection)
        stmt = sa_delete(table).where(table.c.id == row_id)
        if expected_version is not None:
            stmt = stmt.where(table.c.version == expected_version)

        async with self._transaction(collection, row_id) as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await self._raise_missing_or_stale(session, table, collection, row_id, expected_version)

    async def _raise_missing_or_stale(self, session, table, collection, row_id, expected_version):
        current = await self._select_one(session, table, row_id)
        if current is None:
            raise RowNotFoundError(f"{collection} row {row_id} not found", collection=collection, row_id=row_id)
        raise StaleRowError(collection, row_id, expected_version, current["version"])


def default_tables() -> Dict[str, Table]:
    return {
        VEHICLES: Vehicle.__table__,
        DRIVERS: Driver.__table__,
        MAINTENANCE_SCHEDULES: MaintenanceSchedule.__table__,
        AUDIT_LOGS: AuditLog.__table__,
    }
