"""
Failure Injection Tests for the row store gateway.

Validates timeouts, read retries, circuit breaking and the read-back
resolution of timed-out versioned updates.
"""

import asyncio

import pytest

from backend.app.core.exceptions import StoreTimeoutError, UpstreamStoreError
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError
from backend.app.db.resilient_store import TRANSIENT_ERRORS, ResilientRowStore
from backend.app.db.row_store import VEHICLES, RowStoreError, RowStoreUnavailableError, StaleRowError


def _gateway(inner, **overrides):
    options = dict(timeout_seconds=0.5, read_retries=2, backoff_seconds=0)
    options.update(overrides)
    return ResilientRowStore(inner, **options)


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=1)

    async def failing_func():
        raise ValueError("Boom")

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    with pytest.raises(CircuitOpenError):
        await cb.call(failing_func)


@pytest.mark.asyncio
async def test_circuit_breaker_ignores_business_errors():
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=60, failure_exceptions=TRANSIENT_ERRORS)

    async def stale():
        raise StaleRowError(VEHICLES, "v1", 1, 2)

    with pytest.raises(StaleRowError):
        await cb.call(stale)
    assert cb.state == "CLOSED"
    assert cb.failures == 0


@pytest.mark.asyncio
async def test_reads_are_retried_on_transient_errors(mocker):
    inner = mocker.AsyncMock()
    inner.get.side_effect = [RowStoreUnavailableError("connection reset"), {"id": "v1", "version": 1}]

    row = await _gateway(inner).get(VEHICLES, "v1")

    assert row == {"id": "v1", "version": 1}
    assert inner.get.await_count == 2


@pytest.mark.asyncio
async def test_reads_give_up_after_retry_budget(mocker):
    inner = mocker.AsyncMock()
    inner.find.side_effect = RowStoreUnavailableError("connection refused")

    with pytest.raises(UpstreamStoreError):
        await _gateway(inner, read_retries=1).find(VEHICLES)

    assert inner.find.await_count == 2


@pytest.mark.asyncio
async def test_writes_are_attempted_once(mocker):
    inner = mocker.AsyncMock()
    inner.insert.side_effect = RowStoreUnavailableError("connection refused")

    with pytest.raises(UpstreamStoreError) as exc_info:
        await _gateway(inner).insert(VEHICLES, {"plate": "X"})

    assert inner.insert.await_count == 1
    assert exc_info.value.status_code == 500
    assert exc_info.value.details["operation"] == "insert"


@pytest.mark.asyncio
async def test_non_transient_store_errors_are_wrapped(mocker):
    inner = mocker.AsyncMock()
    inner.get.side_effect = RowStoreError("syntax error")

    with pytest.raises(UpstreamStoreError):
        await _gateway(inner).get(VEHICLES, "v1")
    assert inner.get.await_count == 1


@pytest.mark.asyncio
async def test_stale_writes_pass_through(mocker):
    inner = mocker.AsyncMock()
    inner.update.side_effect = StaleRowError(VEHICLES, "v1", 1, 2)

    with pytest.raises(StaleRowError):
        await _gateway(inner).update(VEHICLES, "v1", {"brand": "X"}, expected_version=1)


@pytest.mark.asyncio
async def test_slow_store_times_out(mocker):
    async def hang(*args, **kwargs):
        await asyncio.sleep(5)

    inner = mocker.AsyncMock()
    inner.get.side_effect = hang

    with pytest.raises(StoreTimeoutError) as exc_info:
        await _gateway(inner, timeout_seconds=0.05, read_retries=0).get(VEHICLES, "v1")

    assert exc_info.value.error_code == "ERR_STORE_002"


@pytest.mark.asyncio
async def test_open_circuit_short_circuits_calls(mocker):
    inner = mocker.AsyncMock()
    inner.get.side_effect = RowStoreUnavailableError("down")
    gateway = _gateway(
        inner,
        read_retries=0,
        breaker=CircuitBreaker(failure_threshold=2, reset_timeout=60, failure_exceptions=TRANSIENT_ERRORS),
    )

    for _ in range(2):
        with pytest.raises(UpstreamStoreError):
            await gateway.get(VEHICLES, "v1")

    with pytest.raises(UpstreamStoreError) as exc_info:
        await gateway.get(VEHICLES, "v1")

    assert "circuit open" in exc_info.value.message
    assert inner.get.await_count == 2


@pytest.mark.asyncio
async def test_timed_out_update_that_landed_is_accepted(mocker):
    """The write reached the store before the timeout: read-back finds the new version."""
    async def slow_update(*args, **kwargs):
        await asyncio.sleep(5)

    inner = mocker.AsyncMock()
    inner.update.side_effect = slow_update
    inner.get.return_value = {"id": "v1", "brand": "Scania", "version": 4}

    row = await _gateway(inner, timeout_seconds=0.05).update(VEHICLES, "v1", {"brand": "Scania"}, expected_version=3)

    assert row["version"] == 4


@pytest.mark.asyncio
async def test_timed_out_update_that_did_not_land_is_reported(mocker):
    async def slow_update(*args, **kwargs):
        await asyncio.sleep(5)

    inner = mocker.AsyncMock()
    inner.update.side_effect = slow_update
    inner.get.return_value = {"id": "v1", "brand": "MAN", "version": 3}

    with pytest.raises(StoreTimeoutError):
        await _gateway(inner, timeout_seconds=0.05).update(VEHICLES, "v1", {"brand": "Scania"}, expected_version=3)
