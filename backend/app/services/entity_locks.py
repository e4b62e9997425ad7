"""
Entity locking service.

Serializes coordinator operations that touch the same vehicle or driver.
Two backends: in-process asyncio locks (valid for a single instance only)
and Redis locks (shared by every instance pointing at the same Redis).
Locks narrow the race window; the version column on every row is what
guarantees correctness when a writer bypasses them.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Iterable, List, Tuple

from redis.exceptions import LockError

logger = logging.getLogger("fleet.locks")


class LockTimeoutError(Exception):
    """Raised when an entity lock could not be acquired in time."""

    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Could not lock {key} within {timeout}s")


def vehicle_key(vehicle_id: str) -> str:
    return f"vehicle:{vehicle_id}"


def driver_key(driver_id: str) -> str:
    return f"driver:{driver_id}"


class InProcessLockBackend:
    """asyncio.Lock per key, dropped once nobody holds or waits for it."""

    def __init__(self):
        self._locks: Dict[str, Tuple[asyncio.Lock, int]] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        return lock

    def _checkin(self, key: str) -> None:
        lock, users = self._locks[key]
        if users <= 1:
            del self._locks[key]
        else:
            self._locks[key] = (lock, users - 1)

    async def acquire(self, key: str, timeout: float):
        lock = self._checkout(key)
        waiter = asyncio.ensure_future(lock.acquire())
        try:
            done, _ = await asyncio.wait({waiter}, timeout=timeout)
        except BaseException:
            # Caller cancelled while waiting
            self._abandon(key, lock, waiter)
            raise
        if not done:
            self._abandon(key, lock, waiter)
            raise LockTimeoutError(key, timeout)
        return key

    def _abandon(self, key: str, lock: asyncio.Lock, waiter: asyncio.Future) -> None:
        """Give up a pending acquire, releasing the lock if it was granted anyway."""
        if waiter.done() and not waiter.cancelled() and waiter.exception() is None:
            lock.release()
        else:
            waiter.cancel()
        self._checkin(key)

    async def release(self, handle) -> None:
        lock, _ = self._locks[handle]
        lock.release()
        self._checkin(handle)

    def held_keys(self) -> List[str]:
        return [key for key, (lock, _) in self._locks.items() if lock.locked()]


class RedisLockBackend:
    """Redis locks with a TTL so a crashed instance cannot hold a key forever."""

    def __init__(self, client, ttl_seconds: int, prefix: str = "fleet:lock:"):
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._prefix = prefix

    async def acquire(self, key: str, timeout: float):
        lock = self._client.lock(self._prefix + key, timeout=self._ttl_seconds, blocking_timeout=timeout)
        if not await lock.acquire():
            raise LockTimeoutError(key, timeout)
        return lock

    async def release(self, handle) -> None:
        try:
            await handle.release()
        except LockError:
            # TTL expired mid-operation; versioned writes already guarded the data
            logger.warning("Entity lock %s expired before release", handle.name)


class EntityLockManager:
    """
    Acquires a set of entity keys in sorted order.

    Sorting gives every operation the same acquisition order, so two
    operations sharing keys cannot deadlock.
    """

    def __init__(self, backend, acquire_timeout: float):
        self.backend = backend
        self.acquire_timeout = acquire_timeout

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]):
        handles = []
        try:
            for key in sorted(set(keys)):
                handles.append(await self.backend.acquire(key, self.acquire_timeout))
            yield
        finally:
            for handle in reversed(handles):
                await self.backend.release(handle)
