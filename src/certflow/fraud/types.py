"""Fraud detection type definitions.

Signals are ephemeral: they are computed per analysis run, folded into
the credential's risk level and, when the cooldown allows, into persisted
alerts, then discarded.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from certflow.db.models import (
    AlertKind,
    AlertSeverity,
    Credential,
    FraudAlert,
    RiskLevel,
    VerificationOutcome,
)

T = TypeVar("T")


class SignalKind(str, Enum):
    """Independent signals computed from the verification event log."""

    BURST_RATE = "burst_rate"  # Many attempts in a short window
    SOURCE_DIVERSITY = "source_diversity"  # Many distinct source addresses

    @property
    def alert_kind(self) -> AlertKind:
        """Alert kind persisted for this signal."""
        return AlertKind(self.value)


@dataclass
class AnomalySignal:
    """One signal computed for a credential.

    Burst-rate signals carry the event count; source-diversity signals
    carry the distinct source addresses.
    """

    kind: SignalKind
    risk_tier: RiskLevel = RiskLevel.NONE
    score: float = 0.0  # 0-100
    event_count: int = 0
    sources: list[str] = field(default_factory=list)
    time_window: str = ""

    @property
    def is_anomalous(self) -> bool:
        """Check if the signal carries any risk."""
        return self.risk_tier != RiskLevel.NONE

    @property
    def severity(self) -> AlertSeverity:
        """Alert severity matching the risk tier.

        Raises:
            ValueError: If the signal carries no risk
        """
        if not self.is_anomalous:
            raise ValueError("A signal without risk has no alert severity")
        return AlertSeverity(self.risk_tier.value)

    @property
    def description(self) -> str:
        """Human-readable summary used in alert details."""
        if self.kind == SignalKind.BURST_RATE:
            return f"{self.event_count} verifications in {self.time_window}"
        return f"{len(self.sources)} unique sources in {self.time_window}"

    def alert_details(self) -> dict[str, Any]:
        """Details persisted on the alert created for this signal."""
        return {
            "verification_count": self.event_count,
            "unique_sources": list(self.sources),
            "time_window": self.time_window,
            "anomaly_score": self.score,
            "description": self.description,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "risk_tier": self.risk_tier.value,
            "score": self.score,
            "event_count": self.event_count,
            "sources": list(self.sources),
            "time_window": self.time_window,
        }


@dataclass
class AnalysisResult:
    """Outcome of one analysis run for a credential."""

    credential_id: str
    risk_level: RiskLevel = RiskLevel.NONE
    signals: list[AnomalySignal] = field(default_factory=list)
    alert_ids: list[UUID] = field(default_factory=list)
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def anomalous_signals(self) -> list[AnomalySignal]:
        """Signals carrying any risk."""
        return [signal for signal in self.signals if signal.is_anomalous]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "credential_id": self.credential_id,
            "risk_level": self.risk_level.value,
            "signals": [signal.to_dict() for signal in self.signals],
            "alert_ids": [str(alert_id) for alert_id in self.alert_ids],
            "analyzed_at": self.analyzed_at.isoformat(),
        }


# =============================================================================
# Service Views
# =============================================================================


@dataclass
class VerificationReceipt:
    """Outcome of a public verification request."""

    credential: Credential
    outcome: VerificationOutcome


@dataclass
class AlertView:
    """An alert with the summary of the credential it concerns.

    ``credential`` is None when the credential no longer exists.
    """

    alert: FraudAlert
    credential: Credential | None = None


@dataclass
class Page(Generic[T]):
    """One page of a paginated listing."""

    items: list[T]
    page: int
    page_size: int
    total: int

    @property
    def pages(self) -> int:
        """Number of pages needed for ``total`` items."""
        return -(-self.total // self.page_size) if self.page_size else 0


@dataclass
class FraudStatistics:
    """Dashboard counters for the fraud review queue."""

    pending_count: int = 0
    high_severity_count: int = 0  # High severity and still pending
    reviewed_count: int = 0  # Any resolution status
    high_risk_credential_count: int = 0  # Credentials at medium or high risk
    total_alerts: int = 0
    recent_alerts: list[FraudAlert] = field(default_factory=list)


# =============================================================================
# Verification Insights
# =============================================================================


class InsightKind(str, Enum):
    """Observations drawn from verification traffic across all credentials."""

    MOST_VERIFIED = "most_verified"
    HIGH_DEMAND = "high_demand"  # Several credentials verified very often
    UNUSUAL_SOURCE = "unusual_source"  # One address querying heavily
    ACTIVITY_SPIKE = "activity_spike"
    INVALID_ATTEMPTS = "invalid_attempts"  # Many lookups of unknown ids


class InsightPriority(str, Enum):
    """How urgently a reviewer should look at an insight."""

    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"

    @property
    def rank(self) -> int:
        """Position in the ordering warning < info < success."""
        return list(InsightPriority).index(self)


@dataclass
class Insight:
    """One observation with the figures behind it."""

    kind: InsightKind
    priority: InsightPriority
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class InsightsReport:
    """The most urgent insights, warnings first."""

    insights: list[Insight]
    total_generated: int
    generated_at: datetime
