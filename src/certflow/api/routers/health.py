"""Liveness and readiness endpoints (no authentication)."""

import time
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from certflow import __version__
from certflow.api.schemas.health import (
    ComponentHealth,
    HealthDetailResponse,
    HealthResponse,
    HealthStatus,
)
from certflow.core.logging import get_logger
from certflow.db.dependencies import get_db
from certflow.db.models import Credential

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Liveness")
async def health_check() -> HealthResponse:
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=__version__,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/health/db",
    response_model=HealthDetailResponse,
    summary="Readiness",
    description="Counts the credential catalog and reports the background "
    "analysis queue. Status is unhealthy when the catalog cannot be read.",
)
async def health_db(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthDetailResponse:
    database, credential_count = await _check_catalog(db)
    state = request.app.state
    return HealthDetailResponse(
        status=database.status,
        version=__version__,
        timestamp=datetime.now(UTC),
        database=database,
        credential_count=credential_count,
        fraud_detection_enabled=state.settings.fraud_detection.enabled,
        pending_background_tasks=state.dispatcher.pending,
    )


async def _check_catalog(db: AsyncSession) -> tuple[ComponentHealth, int | None]:
    start = time.perf_counter()
    try:
        count = await db.scalar(select(func.count()).select_from(Credential))
    except SQLAlchemyError as e:
        logger.warning("health_catalog_check_failed", error_type=type(e).__name__)
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message=type(e).__name__), None
    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    return ComponentHealth(status=HealthStatus.HEALTHY, latency_ms=latency_ms), count
