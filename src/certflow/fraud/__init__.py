"""Verification fraud detection: event log, anomaly analysis and alert review."""

from certflow.fraud.alert_manager import (
    AlertDraft,
    AlertLifecycleManager,
    AlertPolicy,
    create_alert_manager,
    parse_resolution_status,
)
from certflow.fraud.anomaly_analyzer import (
    AnalyzerConfig,
    AnomalyAnalyzer,
    burst_rate_signal,
    create_anomaly_analyzer,
    source_diversity_signal,
)
from certflow.fraud.dispatcher import BackgroundDispatcher
from certflow.fraud.event_log import EventLog
from certflow.fraud.insights import VerificationInsightsService, create_insights_service
from certflow.fraud.service import FraudDetectionService, create_fraud_service
from certflow.fraud.store import CredentialStore, store_session
from certflow.fraud.types import (
    AlertView,
    AnalysisResult,
    AnomalySignal,
    FraudStatistics,
    Insight,
    InsightKind,
    InsightPriority,
    InsightsReport,
    Page,
    SignalKind,
    VerificationReceipt,
)

__all__ = [
    # Alert lifecycle
    "AlertDraft",
    "AlertLifecycleManager",
    "AlertPolicy",
    "create_alert_manager",
    "parse_resolution_status",
    # Analysis
    "AnalyzerConfig",
    "AnomalyAnalyzer",
    "burst_rate_signal",
    "create_anomaly_analyzer",
    "source_diversity_signal",
    # Insights
    "VerificationInsightsService",
    "create_insights_service",
    # Infrastructure
    "BackgroundDispatcher",
    "CredentialStore",
    "EventLog",
    "store_session",
    # Service
    "FraudDetectionService",
    "create_fraud_service",
    # Types
    "AlertView",
    "AnalysisResult",
    "AnomalySignal",
    "FraudStatistics",
    "Insight",
    "InsightKind",
    "InsightPriority",
    "InsightsReport",
    "Page",
    "SignalKind",
    "VerificationReceipt",
]
