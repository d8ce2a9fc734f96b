"""API schemas for fraud alert review."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from certflow.db.models import AlertKind, AlertSeverity, AlertStatus, RiskLevel
from certflow.fraud import (
    AlertView,
    FraudStatistics,
    Insight,
    InsightKind,
    InsightPriority,
    InsightsReport,
    Page,
)

from .common import PaginationMeta

# =============================================================================
# Credentials
# =============================================================================


class CredentialSummary(BaseModel):
    """Credential fields shown next to an alert."""

    model_config = ConfigDict(from_attributes=True)

    credential_id: str
    holder_name: str
    holder_email: str
    category: str
    status: str
    risk_level: RiskLevel
    verification_count: int


class FlaggedCredentialResponse(CredentialSummary):
    """Credential carrying a risk label."""

    flagged_at: datetime | None = None
    last_verified_at: datetime | None = None
    last_source_address: str | None = None


class FlaggedCredentialListResponse(BaseModel):
    """A page of flagged credentials."""

    credentials: list[FlaggedCredentialResponse]
    pagination: PaginationMeta

    @classmethod
    def from_page(cls, page: Page) -> "FlaggedCredentialListResponse":
        return cls(
            credentials=[FlaggedCredentialResponse.model_validate(c) for c in page.items],
            pagination=PaginationMeta.from_page(page),
        )


# =============================================================================
# Alerts
# =============================================================================


class AlertResponse(BaseModel):
    """A fraud alert, optionally with its credential summary."""

    model_config = ConfigDict(from_attributes=True)

    alert_id: UUID
    credential_id: str
    alert_kind: AlertKind
    severity: AlertSeverity
    status: AlertStatus
    details: dict[str, Any] = Field(default_factory=dict)
    triggered_at: datetime
    reviewer_id: str | None = None
    reviewed_at: datetime | None = None
    resolution_note: str | None = None
    credential: CredentialSummary | None = None

    @classmethod
    def from_view(cls, view: AlertView) -> "AlertResponse":
        response = cls.model_validate(view.alert)
        if view.credential is not None:
            response.credential = CredentialSummary.model_validate(view.credential)
        return response


class AlertListResponse(BaseModel):
    """A page of fraud alerts."""

    alerts: list[AlertResponse]
    pagination: PaginationMeta

    @classmethod
    def from_page(cls, page: Page) -> "AlertListResponse":
        return cls(
            alerts=[AlertResponse.from_view(view) for view in page.items],
            pagination=PaginationMeta.from_page(page),
        )


class AlertResolveRequest(BaseModel):
    """Reviewer decision on an alert.

    ``status`` is validated by the alert lifecycle so an unknown value is
    reported as an invalid status rather than a schema error.
    """

    status: str = Field(..., description="reviewed, dismissed or confirmed")
    resolution_note: str | None = Field(default=None, max_length=2000)

    model_config = {"json_schema_extra": {"example": {
        "status": "dismissed",
        "resolution_note": "Recruiter batch check, expected traffic",
    }}}


# =============================================================================
# Statistics
# =============================================================================


class FraudStatsResponse(BaseModel):
    """Review queue counters and the most urgent pending alerts."""

    pending_count: int = Field(..., ge=0)
    high_severity_count: int = Field(..., ge=0, description="Pending alerts of high severity")
    reviewed_count: int = Field(..., ge=0, description="Alerts carrying a decision")
    high_risk_credential_count: int = Field(
        ..., ge=0, description="Credentials at medium or high risk"
    )
    total_alerts: int = Field(..., ge=0)
    recent_alerts: list[AlertResponse] = Field(default_factory=list)

    @classmethod
    def from_statistics(cls, stats: FraudStatistics) -> "FraudStatsResponse":
        return cls(
            pending_count=stats.pending_count,
            high_severity_count=stats.high_severity_count,
            reviewed_count=stats.reviewed_count,
            high_risk_credential_count=stats.high_risk_credential_count,
            total_alerts=stats.total_alerts,
            recent_alerts=[AlertResponse.model_validate(a) for a in stats.recent_alerts],
        )


# =============================================================================
# Insights
# =============================================================================


class InsightResponse(BaseModel):
    """One observation on verification traffic."""

    kind: InsightKind
    priority: InsightPriority
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_insight(cls, insight: Insight) -> "InsightResponse":
        return cls(
            kind=insight.kind,
            priority=insight.priority,
            title=insight.title,
            message=insight.message,
            data=insight.data,
        )


class InsightsResponse(BaseModel):
    """The most urgent insights, warnings first."""

    insights: list[InsightResponse]
    total_generated: int = Field(..., ge=0, description="Insights found before truncation")
    generated_at: datetime

    @classmethod
    def from_report(cls, report: InsightsReport) -> "InsightsResponse":
        return cls(
            insights=[InsightResponse.from_insight(i) for i in report.insights],
            total_generated=report.total_generated,
            generated_at=report.generated_at,
        )
