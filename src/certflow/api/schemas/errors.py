"""Error envelope returned by every failing certflow endpoint."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Machine-readable error codes and the HTTP status each maps to."""

    UNAUTHORIZED = "unauthorized"  # 401, bad or missing reviewer token
    FORBIDDEN = "forbidden"  # 403, reviewer access not configured
    INVALID_STATUS = "invalid_status"  # 400, not reviewed/dismissed/confirmed
    NOT_FOUND = "not_found"  # 404, unknown credential or alert
    INVALID_TRANSITION = "invalid_transition"  # 409, alert already decided
    VALIDATION_ERROR = "validation_error"  # 422
    RATE_LIMITED = "rate_limited"  # 429, too many verification attempts
    INTERNAL_ERROR = "internal_error"  # 500
    SERVICE_UNAVAILABLE = "service_unavailable"  # 503, store failure, retry


class APIError(BaseModel):
    """Error response body.

    ``details`` carries the structured attributes of the domain error, e.g.
    ``{"current": "reviewed", "requested": "confirmed"}`` for a rejected
    alert transition or ``{"operation": ..., "retryable": true}`` when the
    store is unavailable.
    """

    error_code: str = Field(..., description="One of ErrorCode")
    message: str
    details: dict[str, Any] | None = None
    request_id: str = Field(..., description="Matches the X-Request-ID response header")
    timestamp: datetime

    model_config = {"json_schema_extra": {"example": {
        "error_code": "invalid_transition",
        "message": "Alert 0190a6b0-... is already reviewed and cannot become confirmed",
        "details": {"current": "reviewed", "requested": "confirmed"},
        "request_id": "0190a6b0-5c3e-7f21-9d7a-3b2c1d0e4f5a",
        "timestamp": "2024-06-03T09:30:00Z",
    }}}
