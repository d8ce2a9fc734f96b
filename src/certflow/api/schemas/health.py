"""Liveness and readiness response schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness: the process is up and serving."""

    status: HealthStatus
    version: str
    timestamp: datetime


class ComponentHealth(BaseModel):
    """Result of probing one dependency."""

    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = Field(default=None, ge=0)


class HealthDetailResponse(HealthResponse):
    """Readiness: the credential catalog is reachable and analysis is running.

    ``credential_count`` is None when the catalog query failed.
    """

    database: ComponentHealth
    credential_count: int | None = None
    fraud_detection_enabled: bool
    pending_background_tasks: int = Field(
        default=0, ge=0, description="Verification analyses not yet finished"
    )

    model_config = {"json_schema_extra": {"example": {
        "status": "healthy",
        "version": "0.1.0",
        "timestamp": "2024-06-03T09:30:00Z",
        "database": {"status": "healthy", "message": None, "latency_ms": 1.42},
        "credential_count": 1250,
        "fraud_detection_enabled": True,
        "pending_background_tasks": 0,
    }}}
