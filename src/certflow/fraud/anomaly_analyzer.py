"""Anomaly analyzer for credential verification traffic.

This module provides the AnomalyAnalyzer that:
1. Counts recent verification attempts (burst-rate signal)
2. Collects recent distinct source addresses (source-diversity signal)
3. Combines both signals into the credential's risk level
4. Hands anomalous signals to the alert lifecycle manager
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from certflow.config.settings import FraudDetectionConfig
from certflow.core.logging import LogContext, get_logger
from certflow.db.models import UNKNOWN_SOURCE, RiskLevel, utc_now

from .alert_manager import AlertDraft, AlertLifecycleManager
from .event_log import EventLog
from .store import CredentialStore
from .types import AnalysisResult, AnomalySignal, SignalKind

logger = get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================


class AnalyzerConfig(BaseModel):
    """Configuration for the anomaly analyzer."""

    # Burst rate
    burst_window_minutes: int = Field(default=5, ge=1, description="Burst counting window")
    burst_low_threshold: int = Field(default=3, ge=1, description="Attempts for low risk")
    burst_medium_threshold: int = Field(default=5, ge=1, description="Attempts for medium risk")
    burst_high_threshold: int = Field(default=15, ge=1, description="Attempts for high risk")

    # Source diversity
    diversity_window_hours: int = Field(default=1, ge=1, description="Source collection window")
    diversity_medium_threshold: int = Field(
        default=3, ge=1, description="Distinct sources for medium risk"
    )
    diversity_high_threshold: int = Field(
        default=5, ge=1, description="Distinct sources for high risk"
    )

    @classmethod
    def from_settings(cls, config: FraudDetectionConfig) -> "AnalyzerConfig":
        """Build from the fraud detection settings section."""
        return cls.model_validate(config.model_dump())

    @property
    def burst_window(self) -> timedelta:
        return timedelta(minutes=self.burst_window_minutes)

    @property
    def diversity_window(self) -> timedelta:
        return timedelta(hours=self.diversity_window_hours)


# =============================================================================
# Signals
# =============================================================================


def burst_rate_signal(count: int, config: AnalyzerConfig) -> AnomalySignal:
    """Classify the number of attempts inside the burst window.

    Args:
        count: Attempts inside the window, the current one included
        config: Analyzer thresholds

    Returns:
        Burst-rate signal with tier and 0-100 score
    """
    tier = RiskLevel.NONE
    score = 0.0
    if count >= config.burst_high_threshold:
        tier = RiskLevel.HIGH
        score = min(100.0, count / config.burst_high_threshold * 100)
    elif count >= config.burst_medium_threshold:
        tier = RiskLevel.MEDIUM
        score = min(70.0, count / config.burst_medium_threshold * 50)
    elif count >= config.burst_low_threshold:
        tier = RiskLevel.LOW
        score = 25.0

    return AnomalySignal(
        kind=SignalKind.BURST_RATE,
        risk_tier=tier,
        score=round(score, 1),
        event_count=count,
        time_window=f"{config.burst_window_minutes} minutes",
    )


def source_diversity_signal(sources: set[str], config: AnalyzerConfig) -> AnomalySignal:
    """Classify the distinct source addresses inside the diversity window.

    The placeholder ``unknown`` address is never counted.
    """
    distinct = sorted(s for s in sources if s and s != UNKNOWN_SOURCE)
    n = len(distinct)

    tier = RiskLevel.NONE
    score = 0.0
    if n >= config.diversity_high_threshold:
        tier = RiskLevel.HIGH
        score = min(100.0, n / config.diversity_high_threshold * 100)
    elif n >= config.diversity_medium_threshold:
        tier = RiskLevel.MEDIUM
        score = min(70.0, n / config.diversity_medium_threshold * 50)

    return AnomalySignal(
        kind=SignalKind.SOURCE_DIVERSITY,
        risk_tier=tier,
        score=round(score, 1),
        sources=distinct,
        time_window=f"{config.diversity_window_hours} hour(s)",
    )


# =============================================================================
# Anomaly Analyzer
# =============================================================================


class AnomalyAnalyzer:
    """Analyzes a credential's verification traffic after each attempt.

    Analysis is best-effort: any failure is logged and reported as a
    result with risk level none. Nothing is ever raised to the caller.

    Example:
        ```python
        analyzer = AnomalyAnalyzer(event_log, credentials, alert_manager)
        result = await analyzer.analyze("CF-2024-001", "203.0.113.7")
        print(result.risk_level)
        ```
    """

    def __init__(
        self,
        event_log: EventLog,
        credentials: CredentialStore,
        alert_manager: AlertLifecycleManager,
        config: AnalyzerConfig | None = None,
    ):
        """Initialize the analyzer.

        Args:
            event_log: Verification event log to read windows from
            credentials: Credential store holding the risk label
            alert_manager: Manager deciding on and creating alerts
            config: Analyzer thresholds and windows
        """
        self.config = config or AnalyzerConfig()
        self._event_log = event_log
        self._credentials = credentials
        self._alert_manager = alert_manager

    async def analyze(
        self,
        credential_id: str,
        source_address: str | None = None,
        now: datetime | None = None,
    ) -> AnalysisResult:
        """Analyze the latest verification attempt for a credential.

        Args:
            credential_id: Credential that was verified
            source_address: Address of the current request
            now: Analysis time (defaults to the current UTC time)

        Returns:
            Combined risk level, both signals and any alerts created
        """
        now = now or utc_now()
        with LogContext(credential_id=credential_id):
            try:
                return await self._analyze(credential_id, source_address, now)
            except Exception as e:
                logger.error(
                    "fraud_analysis_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                    exc_info=True,
                )
                return AnalysisResult(credential_id=credential_id, analyzed_at=now)

    async def _analyze(
        self, credential_id: str, source_address: str | None, now: datetime
    ) -> AnalysisResult:
        credential = await self._credentials.find_by_credential_id(credential_id)
        if credential is None:
            logger.debug("fraud_analysis_skipped", reason="credential_not_found")
            return AnalysisResult(credential_id=credential_id, analyzed_at=now)

        address = source_address or UNKNOWN_SOURCE
        await self._credentials.record_verification(credential_id, address, now)

        count = await self._event_log.count_since(credential_id, now - self.config.burst_window)
        sources = await self._event_log.distinct_sources_since(
            credential_id, now - self.config.diversity_window
        )
        sources.add(address)

        signals = [
            burst_rate_signal(count, self.config),
            source_diversity_signal(sources, self.config),
        ]
        risk_level = RiskLevel.highest(*(signal.risk_tier for signal in signals))
        result = AnalysisResult(
            credential_id=credential_id,
            risk_level=risk_level,
            signals=signals,
            analyzed_at=now,
        )

        drafts = [
            AlertDraft(signal.kind.alert_kind, signal.severity, signal.alert_details())
            for signal in result.anomalous_signals
        ]
        alerts = await self._alert_manager.create_if_quiet(
            credential_id, drafts, triggered_at=now
        )
        result.alert_ids.extend(alert.alert_id for alert in alerts)

        # Moving back to none is left to alert dismissal
        if risk_level != RiskLevel.NONE and risk_level.value != credential.risk_level:
            await self._credentials.apply_risk_level(credential_id, risk_level, now)
            logger.info(
                "credential_risk_level_changed",
                previous=credential.risk_level,
                risk_level=risk_level.value,
            )

        logger.debug(
            "fraud_analysis_completed",
            risk_level=risk_level.value,
            verification_count=count,
            unique_sources=len(signals[1].sources),
            alerts_created=len(result.alert_ids),
        )
        return result


def create_anomaly_analyzer(
    event_log: EventLog,
    credentials: CredentialStore,
    alert_manager: AlertLifecycleManager,
    config: FraudDetectionConfig | None = None,
) -> AnomalyAnalyzer:
    """Create an analyzer from the fraud detection settings section."""
    analyzer_config = AnalyzerConfig.from_settings(config) if config else None
    return AnomalyAnalyzer(event_log, credentials, alert_manager, analyzer_config)
