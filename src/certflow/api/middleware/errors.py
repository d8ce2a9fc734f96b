"""Error handling middleware for mapping exceptions to HTTP responses."""

from datetime import UTC, datetime
from typing import Callable
from uuid import UUID

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from certflow.api.schemas.errors import APIError, ErrorCode
from certflow.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidStatusError,
    InvalidTransitionError,
    NotFoundError,
    RateLimitExceededError,
    TransientStoreError,
)
from certflow.core.logging import get_logger, log_exception

logger = get_logger(__name__)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns standardized error responses.

    Maps domain exceptions to appropriate HTTP status codes and formats
    all errors using the APIError schema.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc)

    def _handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """Convert exception to JSON error response."""
        request_id = self._get_request_id(request)
        status_code, error_code, message, details = self._map_exception(request, exc)

        if status_code >= 500:
            log_exception(logger, exc, event="request_failed", http_path=request.url.path)

        error = APIError(
            error_code=error_code,
            message=message,
            details=details,
            request_id=request_id,
            timestamp=datetime.now(UTC),
        )

        headers = {"X-Request-ID": request_id}
        if status_code == 401:
            headers["WWW-Authenticate"] = "Bearer"
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=status_code,
            content=error.model_dump(mode="json"),
            headers=headers,
        )

    def _get_request_id(self, request: Request) -> str:
        """Extract request ID from state or generate placeholder."""
        if hasattr(request.state, "request_id"):
            rid = request.state.request_id
            return str(rid) if isinstance(rid, UUID) else rid
        return "unknown"

    def _map_exception(
        self, request: Request, exc: Exception
    ) -> tuple[int, str, str, dict | None]:
        """Map exception to (status_code, error_code, message, details)."""
        # Authentication & authorization
        if isinstance(exc, AuthenticationError):
            return (401, ErrorCode.UNAUTHORIZED.value, exc.reason, None)

        if isinstance(exc, AuthorizationError):
            return (
                403,
                ErrorCode.FORBIDDEN.value,
                exc.args[0],
                {"required": exc.required},
            )

        # Missing records
        if isinstance(exc, NotFoundError):
            return (
                404,
                ErrorCode.NOT_FOUND.value,
                exc.args[0],
                {"resource": exc.resource, "identifier": str(exc.identifier)},
            )

        # Alert resolution
        if isinstance(exc, InvalidStatusError):
            return (
                400,
                ErrorCode.INVALID_STATUS.value,
                exc.args[0],
                {"status": exc.status, "allowed": exc.allowed},
            )

        if isinstance(exc, InvalidTransitionError):
            return (
                409,
                ErrorCode.INVALID_TRANSITION.value,
                exc.args[0],
                {"current": exc.current, "requested": exc.requested},
            )

        if isinstance(exc, RateLimitExceededError):
            return (
                429,
                ErrorCode.RATE_LIMITED.value,
                exc.args[0],
                {"limit": exc.limit, "retry_after": exc.retry_after},
            )

        # Store failures (retryable)
        if isinstance(exc, TransientStoreError):
            return (
                503,
                ErrorCode.SERVICE_UNAVAILABLE.value,
                "Service temporarily unavailable, please retry",
                {"operation": exc.operation, "retryable": exc.retryable},
            )

        # Validation errors (Pydantic)
        if isinstance(exc, ValidationError):
            return (
                422,
                ErrorCode.VALIDATION_ERROR.value,
                "Request validation failed",
                {"errors": exc.errors(include_url=False, include_context=False)},
            )

        # Generic exceptions
        return (
            500,
            ErrorCode.INTERNAL_ERROR.value,
            "Internal server error",
            {"type": type(exc).__name__} if self._is_debug(request) else None,
        )

    def _is_debug(self, request: Request) -> bool:
        """Check if debug mode is enabled."""
        settings = getattr(request.app.state, "settings", None)
        return bool(settings and settings.DEBUG)
