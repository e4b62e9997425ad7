"""
Reliability Utilities.

Includes the Circuit Breaker pattern and a bounded retry helper for
idempotent calls.
"""

import time
import asyncio
import logging
from typing import Awaitable, Callable, Any, Tuple, Type

logger = logging.getLogger("fleet.reliability")


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Simple Circuit Breaker implementation.
    If 'failure_threshold' consecutive failures occur, the circuit opens
    and rejects calls for 'reset_timeout' seconds. Only exceptions listed in
    'failure_exceptions' count as failures; anything else is a business
    outcome and passes through untouched.
    """
    def __init__(self, failure_threshold: int = 5, reset_timeout: int = 60,
                 failure_exceptions: Tuple[Type[BaseException], ...] = (Exception,)):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failure_exceptions = failure_exceptions
        self.failures = 0
        self.last_failure_time = 0
        self.state = "CLOSED" # CLOSED, OPEN, HALF_OPEN

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        if self.state == "OPEN":
            if time.time() - self.last_failure_time > self.reset_timeout:
                self.state = "HALF_OPEN"
            else:
                raise CircuitOpenError("Circuit is OPEN")

        try:
            result = await func(*args, **kwargs)
        except self.failure_exceptions:
            self.record_failure()
            raise
        self.reset_state()
        return result

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = time.time()
        if self.state == "HALF_OPEN" or self.failures >= self.failure_threshold:
            if self.state != "OPEN":
                logger.error("Circuit opened after %d consecutive failures", self.failures)
            self.state = "OPEN"

    def reset_state(self):
        self.failures = 0
        self.state = "CLOSED"


async def retry_async(
    func: Callable[[], Awaitable[Any]],
    retries: int,
    backoff_seconds: float,
    retry_on: Tuple[Type[BaseException], ...],
    description: str = "call",
) -> Any:
    """
    Run `func` and retry it up to `retries` times on `retry_on` errors.

    Only for idempotent calls (reads). Backoff grows linearly per attempt.
    """
    attempt = 0
    while True:
        try:
            return await func()
        except retry_on as exc:
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning("%s failed (%s), retry %d/%d", description, exc, attempt, retries)
            await asyncio.sleep(backoff_seconds * attempt)
