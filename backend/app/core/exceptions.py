"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


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


class FareValidationError(AppException):
    """
    Raised when fare or trip input is rejected before any rate lookup.

    Carries field-level detail as a list of {"field", "message"} entries.
    """

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        super().__init__(
            message=errors[0]["message"] if errors else "Invalid fare input",
            error_code="ERR_VALIDATION_002",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"errors": errors}
        )

    @classmethod
    def for_field(cls, field: str, message: str) -> "FareValidationError":
        return cls([{"field": field, "message": message}])


class MissingRatesError(AppException):
    """
    Raised by the API layer when a quote could not resolve every rate.

    The partial breakdown travels in details so the caller still sees it.
    """

    def __init__(self, missing_rates: List[str], partial: Dict[str, Any]):
        super().__init__(
            message="Some rates are not registered",
            error_code="ERR_MISSING_RATES",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"missing_rates": missing_rates, "partial": partial}
        )


class BusinessRuleError(AppException):
    """Raised when a request is well-formed but violates a business rule."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_BUSINESS_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InvalidSettlementTransitionError(AppException):
    """Raised when a settlement operation is not allowed in its current status."""

    def __init__(self, settlement_id: int, current_status: str, operation: str):
        super().__init__(
            message=f"Cannot {operation} settlement {settlement_id} in status {current_status}",
            error_code="ERR_SETTLEMENT_STATE",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "settlement_id": settlement_id,
                "status": current_status,
                "operation": operation
            }
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        404: "ERR_NOT_FOUND",
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
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc.errors())
            }
        }
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


def jsonable_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Pydantic v2 puts exception objects under ctx; keep only printable values."""
    cleaned = []
    for error in errors:
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        cleaned.append(error)
    return cleaned
