"""Fraud alert model and its review state machine."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableJSON, PortableUUID, TimestampMixin, UTCDateTime, utc_now


class AlertKind(str, Enum):
    """Pattern that triggered an alert."""

    BURST_RATE = "burst_rate"
    SOURCE_DIVERSITY = "source_diversity"
    PATTERN_ANOMALY = "pattern_anomaly"


class AlertSeverity(str, Enum):
    """Severity of an alert."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AlertStatus(str, Enum):
    """Review status of an alert."""

    PENDING = "pending"  # Awaiting review
    REVIEWED = "reviewed"  # Looked at, no decision recorded
    DISMISSED = "dismissed"  # False positive
    CONFIRMED = "confirmed"  # Confirmed abuse

    @property
    def is_terminal(self) -> bool:
        """Check if no transition leaves this status."""
        return not ALERT_TRANSITIONS[self]


# Exhaustive transition table: status -> statuses reachable from it
ALERT_TRANSITIONS: dict[AlertStatus, frozenset[AlertStatus]] = {
    AlertStatus.PENDING: frozenset(
        {AlertStatus.REVIEWED, AlertStatus.DISMISSED, AlertStatus.CONFIRMED}
    ),
    AlertStatus.REVIEWED: frozenset(),
    AlertStatus.DISMISSED: frozenset(),
    AlertStatus.CONFIRMED: frozenset(),
}

RESOLUTION_STATUSES: tuple[AlertStatus, ...] = (
    AlertStatus.REVIEWED,
    AlertStatus.DISMISSED,
    AlertStatus.CONFIRMED,
)


class FraudAlert(Base, TimestampMixin):
    """Persisted fraud alert awaiting or holding a reviewer decision.

    Alerts are created pending by the alert lifecycle manager and change
    only through a reviewer resolution. They are never deleted.
    """

    __tablename__ = "fraud_alerts"

    alert_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    credential_id: Mapped[str] = mapped_column(String(100), nullable=False)
    alert_kind: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AlertStatus.PENDING.value
    )

    # verification_count, unique_sources, time_window, anomaly_score, description
    details: Mapped[dict] = mapped_column(PortableJSON(), nullable=False, default=dict)

    triggered_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    # Review
    reviewer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    resolution_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_alert_credential_triggered", "credential_id", "triggered_at"),
        Index("idx_alert_status_severity", "status", "severity", "triggered_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<FraudAlert(id={self.alert_id}, credential={self.credential_id}, "
            f"kind={self.alert_kind}, status={self.status})>"
        )
