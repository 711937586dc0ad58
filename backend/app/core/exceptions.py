"""
Domain errors and the handlers that render them.

Every error response carries error_code, message, details and correlation_id.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InsufficientPermissionsError(AppException):
    """Raised when the caller may not see or act on a transport-scoped resource."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


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


class RouteUnavailableError(AppException):
    """Raised when the directions provider failed or timed out. Retry on a later request."""

    def __init__(self, reason: str, details: Dict[str, Any] = None):
        super().__init__(
            message=f"Route could not be computed: {reason}",
            error_code="ERR_ROUTE_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details
        )


class PricingUnavailableError(AppException):
    """Raised when route data is insufficient to price a transport."""

    def __init__(self, reason: str, transport_id: Any = None):
        super().__init__(
            message=f"Pricing is temporarily unavailable: {reason}. Please retry later.",
            error_code="ERR_PRICING_UNAVAILABLE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"transport_id": transport_id, "reason": reason}
        )


class RuleNotConfiguredError(AppException):
    """Raised when no pricing rule has been created yet (admin setup pending)."""

    def __init__(self):
        super().__init__(
            message="No pricing rule is configured. An admin must create one before transports can be priced.",
            error_code="ERR_PRICING_RULE_NOT_CONFIGURED",
            status_code=status.HTTP_409_CONFLICT
        )


class FeeNotFoundError(AppException):
    """Raised when a complexity classification has no fee row."""

    def __init__(self, complexity_type: Any):
        value = getattr(complexity_type, "value", complexity_type)
        super().__init__(
            message=f"Complexity fee for {value} has not been configured",
            error_code="ERR_COMPLEXITY_FEE_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"complexity_type": value}
        )


class SnapshotAlreadyExistsError(AppException):
    """
    Raised when a transport already has a pricing snapshot.

    Carries the stored snapshot so callers can treat the attempt as a no-op.
    """

    def __init__(self, snapshot: Any):
        self.snapshot = snapshot
        super().__init__(
            message=f"Pricing snapshot already exists for transport {snapshot.transport_id}",
            error_code="ERR_SNAPSHOT_EXISTS",
            status_code=status.HTTP_409_CONFLICT,
            details={"transport_id": snapshot.transport_id, "snapshot_id": snapshot.id}
        )


# Global Exception Handlers

HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    409: "ERR_CONFLICT",
    500: "ERR_INTERNAL_SERVER",
    503: "ERR_SERVICE_UNAVAILABLE",
}


def error_response(request: Request, status_code: int, error_code: str, message: Any, details: Dict[str, Any] = None) -> JSONResponse:
    """Standard error body: error_code, message, details and the request correlation id."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details or {},
            "correlation_id": getattr(request.state, "correlation_id", None),
        }
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    return error_response(request, exc.status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    error_code = HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN")
    response = error_response(request, exc.status_code, error_code, exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        request,
        422,
        "ERR_VALIDATION",
        "Validation error",
        {"errors": jsonable_encoder(exc.errors())},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception: %s: %s", type(exc).__name__, exc, exc_info=exc)
    return error_response(request, 500, "ERR_INTERNAL_SERVER", "An internal server error occurred")
