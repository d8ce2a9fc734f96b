"""Fraud review endpoints.

All endpoints require reviewer authority:
- GET /fraud/stats - Review queue counters
- GET /fraud/alerts - List alerts with filters
- GET /fraud/alerts/{alert_id} - Alert detail
- PUT /fraud/alerts/{alert_id}/resolve - Review, dismiss or confirm an alert
- GET /fraud/flagged - Credentials carrying a risk label
- GET /fraud/insights - Observations on verification traffic
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from certflow.api.dependencies import FraudService, ReviewerId
from certflow.api.schemas.fraud import (
    AlertListResponse,
    AlertResolveRequest,
    AlertResponse,
    FlaggedCredentialListResponse,
    FraudStatsResponse,
    InsightsResponse,
)
from certflow.db.models import AlertSeverity, AlertStatus
from certflow.fraud import AlertView

router = APIRouter(prefix="/fraud", tags=["fraud"])

_AUTH_RESPONSES = {
    401: {"description": "Missing or invalid reviewer token"},
    403: {"description": "Reviewer access not configured"},
}


@router.get(
    "/stats",
    response_model=FraudStatsResponse,
    summary="Fraud statistics",
    description="Pending, high severity and reviewed alert counts, high risk "
    "credentials and the ten most urgent pending alerts.",
    responses=_AUTH_RESPONSES,
)
async def fraud_stats(service: FraudService, reviewer_id: ReviewerId) -> FraudStatsResponse:
    """Get review queue statistics."""
    return FraudStatsResponse.from_statistics(await service.fraud_statistics())


@router.get(
    "/alerts",
    response_model=AlertListResponse,
    summary="List fraud alerts",
    description="""
    List fraud alerts with filtering and pagination.

    **Filters:**
    - status: pending, reviewed, dismissed or confirmed
    - severity: low, medium or high

    Results are sorted by trigger time (newest first), then severity.
    """,
    responses=_AUTH_RESPONSES,
)
async def list_alerts(
    service: FraudService,
    reviewer_id: ReviewerId,
    status: Annotated[AlertStatus | None, Query(description="Filter by status")] = None,
    severity: Annotated[AlertSeverity | None, Query(description="Filter by severity")] = None,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
) -> AlertListResponse:
    """List alerts with their credential summaries."""
    result = await service.list_alerts(
        status=status, severity=severity, page=page, page_size=page_size
    )
    return AlertListResponse.from_page(result)


@router.get(
    "/alerts/{alert_id}",
    response_model=AlertResponse,
    summary="Get a fraud alert",
    responses={404: {"description": "Alert not found"}, **_AUTH_RESPONSES},
)
async def get_alert(
    alert_id: UUID, service: FraudService, reviewer_id: ReviewerId
) -> AlertResponse:
    """Get an alert with its credential summary."""
    return AlertResponse.from_view(await service.get_alert(alert_id))


@router.put(
    "/alerts/{alert_id}/resolve",
    response_model=AlertResponse,
    summary="Resolve a fraud alert",
    description="""
    Record a reviewer decision: reviewed, dismissed or confirmed.

    Dismissing the last pending alert of a credential resets its risk
    level to none. Repeating the current decision is a no-op; changing a
    decision already made is rejected with 409.
    """,
    responses={
        400: {"description": "Invalid status"},
        404: {"description": "Alert not found"},
        409: {"description": "Alert already holds another decision"},
        503: {"description": "Store unavailable, retry"},
        **_AUTH_RESPONSES,
    },
)
async def resolve_alert(
    alert_id: UUID,
    body: AlertResolveRequest,
    service: FraudService,
    reviewer_id: ReviewerId,
) -> AlertResponse:
    """Apply a reviewer decision to an alert."""
    alert = await service.resolve_alert(
        alert_id, body.status, reviewer_id=reviewer_id, note=body.resolution_note
    )
    return AlertResponse.from_view(AlertView(alert=alert))


@router.get(
    "/flagged",
    response_model=FlaggedCredentialListResponse,
    summary="List flagged credentials",
    description="Credentials at low, medium or high risk, most recently flagged first.",
    responses=_AUTH_RESPONSES,
)
async def list_flagged(
    service: FraudService,
    reviewer_id: ReviewerId,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
) -> FlaggedCredentialListResponse:
    """List credentials carrying a risk label."""
    return FlaggedCredentialListResponse.from_page(
        await service.list_flagged(page=page, page_size=page_size)
    )


@router.get(
    "/insights",
    response_model=InsightsResponse,
    summary="Verification insights",
    description="""
    Observations drawn from verification traffic across all credentials:
    most verified credentials, heavy source addresses, last-hour spikes
    and lookups of unknown credential ids.

    Warnings come first; at most six insights are returned by default.
    """,
    responses={503: {"description": "Store unavailable, retry"}, **_AUTH_RESPONSES},
)
async def verification_insights(
    service: FraudService, reviewer_id: ReviewerId
) -> InsightsResponse:
    """Get the most urgent verification insights."""
    return InsightsResponse.from_report(await service.verification_insights())
