"""
Assignment Coordinator.

The only component that writes the vehicle <-> driver relationship
(`drivers.assigned_vehicle_id`) and the assignment-driven vehicle status.

The row store offers single-row atomicity only, so every operation is run as:

1. plan:  unlocked reads name every vehicle/driver the operation may write
2. lock:  those entity keys are acquired in sorted order
3. body:  everything is re-read under the lock and decided on fresh data;
          a counterpart that is not in the locked scope means the plan went
          stale and the operation is re-planned
4. write: ordered, version-checked single-row writes through a WriteSaga;
          a stale version rolls back and retries, a store failure rolls back
          and fails, a failed rollback is reported as a partial failure
5. read:  the merged view is read back and returned

Invariants after every completed operation:
    - at most one driver references a vehicle
    - a vehicle is `assigned` iff a driver references it (maintenance aside)
    - only active drivers reference vehicles
"""

import logging
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from fastapi import status as http_status

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    AppException,
    ConcurrentModificationError,
    ConflictError,
    InvalidStateError,
    UpstreamStoreError,
)
from backend.app.db.row_store import DuplicateRowError, RowNotFoundError, RowStore, RowStoreError, StaleRowError
from backend.app.domain.fleet.directories import DRIVER_ATTRIBUTES, VEHICLE_ATTRIBUTES, DriverDirectory, VehicleDirectory
from backend.app.domain.fleet.maintenance import MaintenanceTrigger
from backend.app.domain.fleet.records import DriverRecord, VehicleRecord
from backend.app.domain.fleet.saga import SagaStepFailed, WriteSaga
from backend.app.domain.fleet.status_machine import (
    SideEffect,
    VehicleEvent,
    event_for_requested_status,
    transition,
)
from backend.app.domain.fleet.views import ViewAssembler
from backend.app.models.enums import DriverStatus, VehicleStatus
from backend.app.schemas.assignment import AssignmentResponse, VehicleStatusResponse
from backend.app.schemas.common import MessageResponse, OperationWarning
from backend.app.services.audit import AuditAction, log_event
from backend.app.services.entity_locks import EntityLockManager, LockTimeoutError, driver_key, vehicle_key

logger = logging.getLogger("fleet.coordinator")

# Another writer got there first; roll back and try again
CONCURRENCY_ERRORS = (StaleRowError, RowNotFoundError, DuplicateRowError)


class _ScopeChanged(Exception):
    """A counterpart found under the lock was not part of the locked scope."""


class _RetryOperation(Exception):
    """A versioned write lost a race and was rolled back cleanly."""


def _require_in_scope(scope: FrozenSet[str], key: str) -> None:
    if key not in scope:
        raise _ScopeChanged(f"{key} is not locked")


class AssignmentCoordinator:
    """Orchestrates every operation touching the vehicle/driver relationship or the vehicle lifecycle."""

    def __init__(
        self,
        store: RowStore,
        vehicles: VehicleDirectory,
        drivers: DriverDirectory,
        trigger: MaintenanceTrigger,
        locks: EntityLockManager,
        views: Optional[ViewAssembler] = None,
        max_attempts: int = None,
    ):
        self.store = store
        self.vehicles = vehicles
        self.drivers = drivers
        self.trigger = trigger
        self.locks = locks
        self.views = views or ViewAssembler(vehicles, drivers)
        self.max_attempts = max_attempts or settings.coordinator_max_attempts

    # ------------------------------------------------------------------
    # Execution frame
    # ------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        plan: Callable[[], Awaitable[Iterable[str]]],
        body: Callable[[FrozenSet[str]], Awaitable[Any]],
    ) -> Any:
        for attempt in range(1, self.max_attempts + 1):
            scope = frozenset(await plan())
            try:
                async with self.locks.hold(scope):
                    return await body(scope)
            except LockTimeoutError as exc:
                logger.warning("%s: %s", operation, exc)
                raise ConcurrentModificationError(operation, attempt) from exc
            except (_ScopeChanged, _RetryOperation) as exc:
                logger.info("%s: attempt %d/%d superseded (%s)", operation, attempt, self.max_attempts, exc)

        raise ConcurrentModificationError(operation, self.max_attempts)

    async def _settle(
        self,
        failure: SagaStepFailed,
        read_back: Callable[[OperationWarning], Awaitable[Any]],
        entity_type: str,
        entity_id: str,
    ) -> Any:
        """
        Decide what a failed write sequence means for the caller.

        Clean rollback + lost race      -> retry the operation
        Clean rollback + store failure  -> UpstreamStoreError, store unchanged
        Rollback incomplete             -> 200 with a warning naming the failed step
        """
        report = failure.report()

        if not failure.fully_rolled_back:
            logger.error("%s left partially applied: %s", failure.operation, report)
            warning = OperationWarning(
                step=failure.step,
                message=(
                    f"{failure.operation} stopped at step '{failure.step}' and could not be fully "
                    f"rolled back; records need manual reconciliation"
                ),
                details=report,
            )
            await log_event(self.store, AuditAction.PARTIAL_FAILURE, entity_type, entity_id, report)
            return await read_back(warning)

        cause = failure.cause
        if isinstance(cause, CONCURRENCY_ERRORS):
            raise _RetryOperation(str(cause)) from failure
        if isinstance(cause, UpstreamStoreError):
            raise UpstreamStoreError(
                f"{failure.operation} failed at step '{failure.step}'; completed steps were rolled back",
                details={**report, "reason": cause.message},
                error_code=cause.error_code,
            ) from cause
        if isinstance(cause, (AppException, RowStoreError)):
            raise cause
        raise failure

    # ------------------------------------------------------------------
    # Shared validation and write primitives
    # ------------------------------------------------------------------

    @staticmethod
    def _check_driver_can_take(driver: DriverRecord, vehicle: VehicleRecord,
                               conflict_status: int = http_status.HTTP_409_CONFLICT,
                               driver_status: Optional[DriverStatus] = None) -> None:
        if driver_status is not None:
            driver = driver.model_copy(update={"status": DriverStatus(driver_status)})
        if not driver.is_active:
            raise InvalidStateError(
                "Driver is not active",
                details={"driver_id": driver.id, "status": driver.status.value}
            )
        if driver.assigned_vehicle_id and driver.assigned_vehicle_id != vehicle.id:
            raise ConflictError(
                f"Driver is already assigned to vehicle {driver.assigned_vehicle_id}",
                details={"driver_id": driver.id, "vehicle_id": driver.assigned_vehicle_id},
                status_code=conflict_status,
            )

    @staticmethod
    def _check_vehicle_free_for(vehicle: VehicleRecord, holder: Optional[DriverRecord], driver_id: str) -> None:
        if holder is not None and holder.id != driver_id:
            raise ConflictError(
                f"Vehicle already assigned to driver {holder.id}",
                details={"vehicle_id": vehicle.id, "driver_id": holder.id},
            )

    async def _bind(self, saga: WriteSaga, vehicle: VehicleRecord, driver: DriverRecord,
                    vehicle_status: VehicleStatus) -> Tuple[VehicleRecord, DriverRecord]:
        """Point `driver` at `vehicle`, then write the vehicle status."""
        if driver.assigned_vehicle_id != vehicle.id:
            previous_ref = driver.assigned_vehicle_id
            before = driver
            driver = await saga.step(
                "driver_reference",
                lambda: self.drivers.set_vehicle_reference(before, vehicle.id),
                compensate=lambda written: self.drivers.set_vehicle_reference(written, previous_ref),
            )
        vehicle = await self._write_vehicle_status(saga, vehicle, vehicle_status)
        return vehicle, driver

    async def _release(self, saga: WriteSaga, vehicle: Optional[VehicleRecord], driver: DriverRecord,
                       vehicle_status: Optional[VehicleStatus]) -> Tuple[Optional[VehicleRecord], DriverRecord]:
        """Clear `driver`'s reference, then write the vehicle status (if the vehicle still exists)."""
        previous_ref = driver.assigned_vehicle_id
        before = driver
        driver = await saga.step(
            "release_driver_reference",
            lambda: self.drivers.set_vehicle_reference(before, None),
            compensate=lambda written: self.drivers.set_vehicle_reference(written, previous_ref),
        )
        if vehicle is not None and vehicle_status is not None:
            vehicle = await self._write_vehicle_status(saga, vehicle, vehicle_status)
        return vehicle, driver

    async def _write_vehicle_status(self, saga: WriteSaga, vehicle: VehicleRecord,
                                    vehicle_status: VehicleStatus) -> VehicleRecord:
        if vehicle.status == vehicle_status:
            return vehicle
        previous_status = vehicle.status
        before = vehicle
        return await saga.step(
            "vehicle_status",
            lambda: self.vehicles.update(before, status=vehicle_status),
            compensate=lambda written: self.vehicles.update(written, status=previous_status),
        )

    # ------------------------------------------------------------------
    # assign / unassign
    # ------------------------------------------------------------------

    async def assign(self, vehicle_id: str, driver_id: str) -> AssignmentResponse:
        """
        Assign `driver_id` to `vehicle_id`.

        Raises:
            ResourceNotFoundError: Vehicle or driver does not exist
            InvalidStateError: Driver inactive, or vehicle under maintenance
            ConflictError: Driver holds another vehicle (400), vehicle held by another driver (409)
        """
        async def plan():
            return {vehicle_key(vehicle_id), driver_key(driver_id)}

        async def body(scope):
            vehicle = await self.vehicles.require(vehicle_id)
            driver = await self.drivers.require(driver_id)
            self._check_driver_can_take(driver, vehicle, conflict_status=http_status.HTTP_400_BAD_REQUEST)
            holder = await self.drivers.find_by_vehicle(vehicle.id)
            self._check_vehicle_free_for(vehicle, holder, driver.id)
            target = transition(vehicle.status, VehicleEvent.ASSIGN)

            saga = WriteSaga("assign")
            try:
                await self._bind(saga, vehicle, driver, target.status)
            except SagaStepFailed as failure:
                return await self._settle(
                    failure, lambda warning: self.views.pair(vehicle_id, driver_id, warning), "vehicle", vehicle_id
                )

            logger.info("Vehicle %s assigned to driver %s", vehicle_id, driver_id)
            await log_event(self.store, AuditAction.VEHICLE_ASSIGNED, "vehicle", vehicle_id,
                            {"driver_id": driver_id, "previous_status": vehicle.status.value})
            return await self.views.pair(vehicle_id, driver_id)

        return await self._run("assign", plan, body)

    async def unassign(self, vehicle_id: str) -> AssignmentResponse:
        """
        Release whichever driver holds `vehicle_id`.

        Raises:
            ResourceNotFoundError: Vehicle does not exist
            InvalidStateError: Vehicle is not currently assigned
        """
        async def plan():
            holder = await self.drivers.find_by_vehicle(vehicle_id)
            keys = {vehicle_key(vehicle_id)}
            if holder is not None:
                keys.add(driver_key(holder.id))
            return keys

        async def body(scope):
            vehicle = await self.vehicles.require(vehicle_id)
            holder = await self.drivers.find_by_vehicle(vehicle_id)
            if holder is None:
                raise InvalidStateError("Vehicle is not currently assigned", details={"vehicle_id": vehicle_id})
            _require_in_scope(scope, driver_key(holder.id))
            target = transition(vehicle.status, VehicleEvent.UNASSIGN)

            saga = WriteSaga("unassign")
            try:
                await self._release(saga, vehicle, holder, target.status)
            except SagaStepFailed as failure:
                return await self._settle(
                    failure, lambda warning: self.views.for_vehicle(vehicle_id, warning), "vehicle", vehicle_id
                )

            logger.info("Vehicle %s released from driver %s", vehicle_id, holder.id)
            await log_event(self.store, AuditAction.VEHICLE_UNASSIGNED, "vehicle", vehicle_id,
                            {"driver_id": holder.id})
            return await self.views.pair(vehicle_id, None)

        return await self._run("unassign", plan, body)

    # ------------------------------------------------------------------
    # updates
    # ------------------------------------------------------------------

    async def update_vehicle(self, vehicle_id: str, changes: Mapping[str, Any]) -> AssignmentResponse:
        """
        Update vehicle attributes and optionally its assignment in one call.

        `changes` holds any of brand/model/plate and optionally `driver_id`:
        missing leaves the assignment alone, None releases, an id assigns.
        Writes happen in a fixed order: vehicle row, previous driver,
        target driver; the returned view is read back afterwards.
        """
        attributes = {field: changes[field] for field in VEHICLE_ATTRIBUTES if field in changes}
        relationship_change = "driver_id" in changes
        target_id = changes.get("driver_id")

        async def plan():
            keys = {vehicle_key(vehicle_id)}
            holder = await self.drivers.find_by_vehicle(vehicle_id)
            if holder is not None:
                keys.add(driver_key(holder.id))
            if target_id is not None:
                keys.add(driver_key(target_id))
            return keys

        async def body(scope):
            vehicle = await self.vehicles.require(vehicle_id)
            if "plate" in attributes and attributes["plate"] != vehicle.plate:
                await self.vehicles.ensure_plate_available(attributes["plate"], exclude_id=vehicle.id)

            holder = await self.drivers.find_by_vehicle(vehicle_id)
            if holder is not None:
                _require_in_scope(scope, driver_key(holder.id))

            keeps_holder = holder is not None and holder.id == target_id
            target = None
            if relationship_change and target_id is not None and not keeps_holder:
                target = await self.drivers.require(target_id)
                self._check_driver_can_take(target, vehicle)

            final_status = self._final_vehicle_status(vehicle, holder, relationship_change, target_id, keeps_holder)

            saga = WriteSaga("update_vehicle")
            try:
                vehicle = await self._write_vehicle_row(saga, vehicle, attributes, final_status)
                if relationship_change and holder is not None and not keeps_holder:
                    await self._release(saga, None, holder, None)
                if target is not None:
                    before = target
                    await saga.step(
                        "driver_reference",
                        lambda: self.drivers.set_vehicle_reference(before, vehicle_id),
                        compensate=lambda written: self.drivers.set_vehicle_reference(
                            written, before.assigned_vehicle_id
                        ),
                    )
            except SagaStepFailed as failure:
                return await self._settle(
                    failure, lambda warning: self.views.for_vehicle(vehicle_id, warning), "vehicle", vehicle_id
                )

            await log_event(self.store, AuditAction.VEHICLE_UPDATED, "vehicle", vehicle_id, {
                "updated_fields": sorted(attributes),
                "status": final_status.value,
                "driver_change": relationship_change,
                "previous_driver_id": holder.id if holder else None,
                "driver_id": target_id if relationship_change else (holder.id if holder else None),
            })
            return await self.views.for_vehicle(vehicle_id)

        return await self._run("update_vehicle", plan, body)

    @staticmethod
    def _final_vehicle_status(vehicle: VehicleRecord, holder: Optional[DriverRecord],
                              relationship_change: bool, target_id: Optional[str],
                              keeps_holder: bool) -> VehicleStatus:
        if relationship_change:
            if keeps_holder and vehicle.status == VehicleStatus.MAINTENANCE:
                return VehicleStatus.MAINTENANCE
            event = VehicleEvent.ASSIGN if target_id is not None else VehicleEvent.UNASSIGN
            return transition(vehicle.status, event).status
        if vehicle.status == VehicleStatus.MAINTENANCE:
            return VehicleStatus.MAINTENANCE
        return VehicleStatus.ASSIGNED if holder is not None else VehicleStatus.AVAILABLE

    async def _write_vehicle_row(self, saga: WriteSaga, vehicle: VehicleRecord,
                                 attributes: Dict[str, Any], final_status: VehicleStatus) -> VehicleRecord:
        changed = {field: value for field, value in attributes.items() if getattr(vehicle, field) != value}
        if not changed and vehicle.status == final_status:
            return vehicle
        before = vehicle
        restore = {field: getattr(before, field) for field in changed}
        return await saga.step(
            "vehicle_attributes",
            lambda: self.vehicles.update(before, changed, status=final_status),
            compensate=lambda written: self.vehicles.update(written, restore, status=before.status),
        )

    async def update_driver(self, driver_id: str, changes: Mapping[str, Any]) -> AssignmentResponse:
        """
        Update driver attributes and optionally its assignment in one call.

        `changes` holds driver attributes and optionally `vehicle_id`:
        missing leaves the assignment alone, None releases, an id assigns.
        Deactivating a driver that holds a vehicle releases the vehicle.
        """
        attributes = {field: changes[field] for field in DRIVER_ATTRIBUTES if field in changes}

        async def plan():
            keys = {driver_key(driver_id)}
            driver = await self.drivers.get(driver_id)
            if driver is not None and driver.assigned_vehicle_id:
                keys.add(vehicle_key(driver.assigned_vehicle_id))
            if changes.get("vehicle_id"):
                keys.add(vehicle_key(changes["vehicle_id"]))
            return keys

        async def body(scope):
            driver = await self.drivers.require(driver_id)
            current_id = driver.assigned_vehicle_id
            if current_id:
                _require_in_scope(scope, vehicle_key(current_id))

            new_status = DriverStatus(attributes.get("status", driver.status))
            relationship_change = "vehicle_id" in changes
            requested_id = changes.get("vehicle_id")
            if not relationship_change and new_status != DriverStatus.ACTIVE and current_id:
                relationship_change, requested_id = True, None

            releases = relationship_change and current_id is not None and requested_id != current_id
            current_vehicle = await self.vehicles.get(current_id) if releases else None

            target_vehicle = None
            target_status = None
            if relationship_change and requested_id is not None:
                if requested_id == current_id:
                    if new_status != DriverStatus.ACTIVE:
                        raise InvalidStateError("Driver is not active", details={"driver_id": driver_id})
                else:
                    target_vehicle = await self.vehicles.require(requested_id)
                    self._check_driver_can_take(driver.model_copy(update={"assigned_vehicle_id": None}),
                                                target_vehicle, driver_status=new_status)
                    holder = await self.drivers.find_by_vehicle(requested_id)
                    self._check_vehicle_free_for(target_vehicle, holder, driver_id)
                    target_status = transition(target_vehicle.status, VehicleEvent.ASSIGN).status

            release_status = None
            if current_vehicle is not None:
                release_status = transition(current_vehicle.status, VehicleEvent.UNASSIGN).status

            saga = WriteSaga("update_driver")
            try:
                if attributes:
                    before = driver
                    restore = {field: getattr(before, field) for field in attributes}
                    driver = await saga.step(
                        "driver_attributes",
                        lambda: self.drivers.update(before, attributes),
                        compensate=lambda written: self.drivers.update(written, restore),
                    )
                if releases:
                    _, driver = await self._release(saga, current_vehicle, driver, release_status)
                if target_vehicle is not None:
                    await self._bind(saga, target_vehicle, driver, target_status)
            except SagaStepFailed as failure:
                return await self._settle(
                    failure, lambda warning: self.views.for_driver(driver_id, warning), "driver", driver_id
                )

            await log_event(self.store, AuditAction.DRIVER_UPDATED, "driver", driver_id, {
                "updated_fields": sorted(attributes),
                "previous_vehicle_id": current_id,
                "vehicle_id": requested_id if relationship_change else current_id,
            })
            if releases:
                await log_event(self.store, AuditAction.VEHICLE_UNASSIGNED, "vehicle", current_id,
                                {"driver_id": driver_id})
            if target_vehicle is not None:
                await log_event(self.store, AuditAction.VEHICLE_ASSIGNED, "vehicle", target_vehicle.id,
                                {"driver_id": driver_id, "previous_status": target_vehicle.status.value})
            return await self.views.for_driver(driver_id)

        return await self._run("update_driver", plan, body)

    # ------------------------------------------------------------------
    # deletions
    # ------------------------------------------------------------------

    async def delete_vehicle(self, vehicle_id: str) -> MessageResponse:
        """Delete a vehicle, releasing its driver first."""
        async def plan():
            holder = await self.drivers.find_by_vehicle(vehicle_id)
            keys = {vehicle_key(vehicle_id)}
            if holder is not None:
                keys.add(driver_key(holder.id))
            return keys

        async def body(scope):
            vehicle = await self.vehicles.require(vehicle_id)
            holder = await self.drivers.find_by_vehicle(vehicle_id)
            if holder is not None:
                _require_in_scope(scope, driver_key(holder.id))

            saga = WriteSaga("delete_vehicle")
            try:
                if holder is not None:
                    release_status = transition(vehicle.status, VehicleEvent.UNASSIGN).status
                    vehicle, _ = await self._release(saga, vehicle, holder, release_status)
                await saga.step("delete_vehicle", lambda: self.vehicles.delete(vehicle))
            except SagaStepFailed as failure:
                return await self._settle(
                    failure,
                    lambda warning: MessageResponse(message="Vehicle deletion incomplete", warning=warning),
                    "vehicle",
                    vehicle_id,
                )

            logger.info("Vehicle %s deleted", vehicle_id)
            await log_event(self.store, AuditAction.VEHICLE_DELETED, "vehicle", vehicle_id, {
                "plate": vehicle.plate,
                "released_driver_id": holder.id if holder else None,
            })
            return MessageResponse(message="Vehicle deleted successfully")

        return await self._run("delete_vehicle", plan, body)

    async def delete_driver(self, driver_id: str) -> MessageResponse:
        """Delete a driver, returning its vehicle to the pool first."""
        async def plan():
            keys = {driver_key(driver_id)}
            driver = await self.drivers.get(driver_id)
            if driver is not None and driver.assigned_vehicle_id:
                keys.add(vehicle_key(driver.assigned_vehicle_id))
            return keys

        async def body(scope):
            driver = await self.drivers.require(driver_id)
            vehicle_id = driver.assigned_vehicle_id
            if vehicle_id:
                _require_in_scope(scope, vehicle_key(vehicle_id))

            saga = WriteSaga("delete_driver")
            try:
                if vehicle_id:
                    vehicle = await self.vehicles.get(vehicle_id)
                    release_status = transition(vehicle.status, VehicleEvent.UNASSIGN).status if vehicle else None
                    _, driver = await self._release(saga, vehicle, driver, release_status)
                final = driver
                await saga.step("delete_driver", lambda: self.drivers.delete(final))
            except SagaStepFailed as failure:
                return await self._settle(
                    failure,
                    lambda warning: MessageResponse(message="Driver deletion incomplete", warning=warning),
                    "driver",
                    driver_id,
                )

            logger.info("Driver %s deleted", driver_id)
            await log_event(self.store, AuditAction.DRIVER_DELETED, "driver", driver_id,
                            {"released_vehicle_id": vehicle_id})
            if vehicle_id:
                await log_event(self.store, AuditAction.VEHICLE_UNASSIGNED, "vehicle", vehicle_id,
                                {"driver_id": driver_id, "reason": "driver deleted"})
            return MessageResponse(message="Driver deleted successfully")

        return await self._run("delete_driver", plan, body)

    # ------------------------------------------------------------------
    # explicit status changes
    # ------------------------------------------------------------------

    async def set_vehicle_status(self, vehicle_id: str, requested: VehicleStatus,
                                 scheduled_date=None, description: Optional[str] = None) -> VehicleStatusResponse:
        """
        Move a vehicle into or out of maintenance.

        Entering maintenance schedules a maintenance entry. If that entry
        cannot be recorded the status change still stands and the response
        carries a warning for the `maintenance_entry` step.

        Raises:
            ResourceNotFoundError: Vehicle does not exist
            InvalidStateError: Transition not allowed (e.g. requesting `assigned`)
            UpstreamStoreError: The status write itself failed
        """
        event = event_for_requested_status(requested)

        async def plan():
            return {vehicle_key(vehicle_id)}

        async def body(scope):
            vehicle = await self.vehicles.require(vehicle_id)
            holder = None
            if event == VehicleEvent.LEAVE_MAINTENANCE:
                holder = await self.drivers.find_by_vehicle(vehicle_id)
            target = transition(vehicle.status, event, has_driver=holder is not None)
            previous_status = vehicle.status

            try:
                vehicle = await self.vehicles.update(vehicle, status=target.status)
            except CONCURRENCY_ERRORS as exc:
                raise _RetryOperation(str(exc)) from exc

            maintenance, warning = None, None
            if SideEffect.CREATE_MAINTENANCE_ENTRY in target.side_effects:
                try:
                    maintenance = await self.trigger.schedule(vehicle_id, scheduled_date, description)
                except (AppException, RowStoreError) as exc:
                    logger.error("Vehicle %s is in maintenance but its entry was not recorded: %s", vehicle_id, exc)
                    warning = OperationWarning(
                        step="maintenance_entry",
                        message="Vehicle status changed but the maintenance entry could not be recorded",
                        details={"error": str(exc), "status_changed": True},
                    )
                    await log_event(self.store, AuditAction.PARTIAL_FAILURE, "vehicle", vehicle_id,
                                    {"failed_step": "maintenance_entry", "error": str(exc)})
                else:
                    await log_event(self.store, AuditAction.MAINTENANCE_SCHEDULED, "vehicle", vehicle_id,
                                    {"maintenance_id": maintenance.id})

            logger.info("Vehicle %s status %s -> %s", vehicle_id, previous_status.value, target.status.value)
            await log_event(self.store, AuditAction.VEHICLE_STATUS_CHANGED, "vehicle", vehicle_id, {
                "from": previous_status.value,
                "to": target.status.value,
                "requested": VehicleStatus(requested).value,
            })
            return self.views.status_change(vehicle, maintenance, warning)

        return await self._run("set_vehicle_status", plan, body)
