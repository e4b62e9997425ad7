"""
Resilient row store gateway.

Every round trip to the row store carries an explicit timeout and goes
through a circuit breaker. Reads are retried on transient failures;
writes are attempted once. A versioned update that timed out is resolved
by reading the row back, since the write may or may not have landed.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional

from backend.app.core.config import settings
from backend.app.core.exceptions import StoreTimeoutError, UpstreamStoreError
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError, retry_async
from backend.app.db.row_store import (
    DuplicateRowError,
    Row,
    RowNotFoundError,
    RowStore,
    RowStoreError,
    RowStoreUnavailableError,
    StaleRowError,
)

logger = logging.getLogger("fleet.store")

# Outcomes the caller decides on; never wrapped, never counted by the breaker
PASSTHROUGH_ERRORS = (RowNotFoundError, StaleRowError, DuplicateRowError)
TRANSIENT_ERRORS = (RowStoreUnavailableError, StoreTimeoutError)


class ResilientRowStore(RowStore):
    """Timeouts, circuit breaking and read retries around another RowStore."""

    def __init__(
        self,
        inner: RowStore,
        timeout_seconds: float = None,
        read_retries: int = None,
        backoff_seconds: float = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.inner = inner
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.store_timeout_seconds
        self.read_retries = read_retries if read_retries is not None else settings.store_read_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.store_retry_backoff_seconds
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=settings.store_circuit_failure_threshold,
            reset_timeout=settings.store_circuit_reset_seconds,
            failure_exceptions=TRANSIENT_ERRORS,
        )

    async def _timed(self, operation: str, collection: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await asyncio.wait_for(factory(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            raise StoreTimeoutError(operation, collection, self.timeout_seconds) from None

    async def _once(self, operation: str, collection: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await self.breaker.call(self._timed, operation, collection, factory)
        except CircuitOpenError as exc:
            raise UpstreamStoreError(
                "Row store is unavailable (circuit open)",
                details={"operation": operation, "collection": collection},
            ) from exc

    async def _read(self, operation: str, collection: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await retry_async(
                lambda: self._once(operation, collection, factory),
                retries=self.read_retries,
                backoff_seconds=self.backoff_seconds,
                retry_on=TRANSIENT_ERRORS,
                description=f"{operation} on {collection}",
            )
        except StoreTimeoutError:
            raise
        except PASSTHROUGH_ERRORS:
            raise
        except RowStoreError as exc:
            raise UpstreamStoreError(
                f"Row store {operation} on {collection} failed",
                details={"operation": operation, "collection": collection, "reason": str(exc)},
            ) from exc

    async def _write(self, operation: str, collection: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await self._once(operation, collection, factory)
        except PASSTHROUGH_ERRORS:
            raise
        except RowStoreError as exc:
            raise UpstreamStoreError(
                f"Row store {operation} on {collection} failed",
                details={"operation": operation, "collection": collection, "reason": str(exc)},
            ) from exc

    async def get(self, collection: str, row_id: Any) -> Optional[Row]:
        return await self._read("get", collection, lambda: self.inner.get(collection, row_id))

    async def find(self, collection, filters=None, order_by=None, descending=False, limit=None) -> List[Row]:
        return await self._read(
            "find",
            collection,
            lambda: self.inner.find(collection, filters, order_by=order_by, descending=descending, limit=limit),
        )

    async def insert(self, collection: str, values: Mapping[str, Any]) -> Row:
        return await self._write("insert", collection, lambda: self.inner.insert(collection, values))

    async def update(self, collection, row_id, values, expected_version=None) -> Row:
        try:
            return await self._write(
                "update", collection, lambda: self.inner.update(collection, row_id, values, expected_version)
            )
        except StoreTimeoutError:
            if expected_version is None:
                raise
            row = await self.get(collection, row_id)
            if row is not None and row["version"] == expected_version + 1 and _matches(row, values):
                logger.warning("Timed-out update of %s %s was applied, continuing", collection, row_id)
                return row
            raise

    async def delete(self, collection, row_id, expected_version=None) -> None:
        await self._write("delete", collection, lambda: self.inner.delete(collection, row_id, expected_version))


def _matches(row: Row, values: Mapping[str, Any]) -> bool:
    return all(row.get(column) == value for column, value in values.items())
