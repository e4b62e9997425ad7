"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict

logger = logging.getLogger("fleet.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ConflictError(AppException):
    """
    Raised when a request collides with existing state.

    Duplicate plates, a driver already holding another vehicle, a vehicle
    already held by another driver. Some endpoints report the driver-side
    collision as 400, so the status code can be overridden.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None, status_code: int = status.HTTP_409_CONFLICT):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT_001",
            status_code=status_code,
            details=details
        )


class InvalidStateError(AppException):
    """Raised when an entity is not in a state that allows the operation."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_STATE_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ConcurrentModificationError(AppException):
    """Raised when concurrent writers kept invalidating an operation."""

    def __init__(self, operation: str, attempts: int):
        super().__init__(
            message=f"{operation} could not complete because the records kept changing, retry later",
            error_code="ERR_CONFLICT_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"operation": operation, "attempts": attempts}
        )


class UpstreamStoreError(AppException):
    """Raised for unexpected failures of the row store."""

    def __init__(self, message: str = "Row store request failed", details: Dict[str, Any] = None,
                 error_code: str = "ERR_STORE_001"):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class StoreTimeoutError(UpstreamStoreError):
    """Raised when a row store round trip exceeds its timeout."""

    def __init__(self, operation: str, collection: str, timeout: float):
        super().__init__(
            message=f"Row store {operation} on {collection} timed out after {timeout}s",
            details={"operation": operation, "collection": collection, "timeout_seconds": timeout},
            error_code="ERR_STORE_002"
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.error_code, exc.message, extra={"details": exc.details})
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        })
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        404: "ERR_NOT_FOUND",
        405: "ERR_METHOD_NOT_ALLOWED",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors (invalid ids, unknown status values)."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": exc.errors()
            }
        })
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
