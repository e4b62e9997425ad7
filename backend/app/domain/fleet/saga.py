"""
Ordered single-row writes with compensation.

The row store has no multi-row transaction, so a coordinator operation is a
sequence of independent writes. Each completed step registers an undo
write; when a later step fails, the undo writes run in reverse order and
the failure is re-raised together with what was and was not rolled back.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger("fleet.saga")


class SagaStepFailed(Exception):
    """A forward step failed; carries the rollback report."""

    def __init__(self, operation: str, step: str, cause: BaseException,
                 rolled_back: List[str], rollback_failures: List[Dict[str, str]]):
        self.operation = operation
        self.step = step
        self.cause = cause
        self.rolled_back = rolled_back
        self.rollback_failures = rollback_failures
        super().__init__(f"{operation}: step '{step}' failed: {cause}")

    @property
    def fully_rolled_back(self) -> bool:
        return not self.rollback_failures

    def report(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "failed_step": self.step,
            "error": str(self.cause),
            "rolled_back": list(self.rolled_back),
            "not_rolled_back": [failure["step"] for failure in self.rollback_failures],
        }


class WriteSaga:
    """
    Usage:
        saga = WriteSaga("assign")
        driver = await saga.step("driver_reference", write, compensate=undo)
        vehicle = await saga.step("vehicle_status", write2, compensate=undo2)

    `compensate` receives the value returned by the forward write, so an undo
    can be version-checked against the row the forward write produced.
    """

    def __init__(self, operation: str):
        self.operation = operation
        self.completed: List[str] = []
        self._undo: List[Tuple[str, Callable[[], Awaitable[Any]]]] = []

    async def step(
        self,
        name: str,
        action: Callable[[], Awaitable[Any]],
        compensate: Optional[Callable[[Any], Awaitable[Any]]] = None,
    ) -> Any:
        try:
            result = await action()
        except Exception as exc:
            rolled_back, failures = await self._rollback()
            raise SagaStepFailed(self.operation, name, exc, rolled_back, failures) from exc

        self.completed.append(name)
        if compensate is not None:
            self._undo.append((name, lambda: compensate(result)))
        return result

    async def _rollback(self) -> Tuple[List[str], List[Dict[str, str]]]:
        rolled_back, failures = [], []
        while self._undo:
            name, undo = self._undo.pop()
            try:
                await undo()
            except Exception as exc:
                logger.error("%s: compensation of '%s' failed: %s", self.operation, name, exc)
                failures.append({"step": name, "error": str(exc)})
            else:
                logger.warning("%s: rolled back '%s'", self.operation, name)
                rolled_back.append(name)
        return rolled_back, failures
