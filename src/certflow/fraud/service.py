"""Fraud detection service: the operations exposed to the API.

Wires the event log, anomaly analyzer, alert lifecycle manager, insights
and smart search engine together. Public verification records the attempt and
dispatches analysis in the background; administrator operations run
synchronously and surface store failures as TransientStoreError.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certflow.config.settings import Settings
from certflow.core.exceptions import CredentialNotFoundError
from certflow.core.logging import LogContext, get_logger
from certflow.db.models import (
    AlertSeverity,
    AlertStatus,
    Credential,
    FraudAlert,
    RiskLevel,
    VerificationEvent,
    VerificationOutcome,
)
from certflow.db.repositories import CredentialRepository, FraudAlertRepository
from certflow.search import SearchResponse, SmartSearchEngine

from .alert_manager import AlertLifecycleManager, create_alert_manager
from .anomaly_analyzer import AnomalyAnalyzer, create_anomaly_analyzer
from .dispatcher import BackgroundDispatcher
from .event_log import EventLog
from .insights import VerificationInsightsService, create_insights_service
from .store import CredentialStore, store_session
from .types import AlertView, FraudStatistics, InsightsReport, Page, VerificationReceipt

logger = get_logger(__name__)

RECENT_ALERTS_LIMIT = 10
HIGH_RISK_LEVELS = (RiskLevel.MEDIUM, RiskLevel.HIGH)


class FraudDetectionService:
    """Fraud detection and review operations.

    Example:
        service = create_fraud_service(session_factory, settings, dispatcher)
        receipt = await service.verify_credential("CF-2024-001", "203.0.113.7")
        stats = await service.fraud_statistics()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        event_log: EventLog,
        credentials: CredentialStore,
        analyzer: AnomalyAnalyzer,
        alert_manager: AlertLifecycleManager,
        search_engine: SmartSearchEngine,
        dispatcher: BackgroundDispatcher,
        insights: VerificationInsightsService | None = None,
        analysis_enabled: bool = True,
    ):
        self._session_factory = session_factory
        self.event_log = event_log
        self.credentials = credentials
        self.analyzer = analyzer
        self.alert_manager = alert_manager
        self.search_engine = search_engine
        self.dispatcher = dispatcher
        self.insights = insights or VerificationInsightsService(session_factory)
        self.analysis_enabled = analysis_enabled

    # -------------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------------

    async def verify_credential(
        self,
        credential_id: str,
        source_address: str | None = None,
        *,
        user_agent: str | None = None,
        requester_id: str | None = None,
    ) -> VerificationReceipt:
        """Verify a credential and record the attempt.

        The attempt is recorded and analyzed in the background whatever
        the outcome; the caller never waits for either.

        Raises:
            CredentialNotFoundError: If no credential has this id
        """
        credential = await self.credentials.find_by_credential_id(credential_id)
        if credential is None:
            outcome = VerificationOutcome.INVALID
        elif credential.is_revoked:
            outcome = VerificationOutcome.REVOKED
        else:
            outcome = VerificationOutcome.VALID

        self.record_and_analyze(
            credential_id,
            outcome,
            source_address,
            user_agent=user_agent,
            requester_id=requester_id,
        )

        if credential is None:
            raise CredentialNotFoundError(credential_id)
        return VerificationReceipt(credential=credential, outcome=outcome)

    def record_and_analyze(
        self,
        credential_id: str,
        outcome: VerificationOutcome,
        source_address: str | None = None,
        *,
        user_agent: str | None = None,
        requester_id: str | None = None,
    ):
        """Dispatch recording and analysis of one verification attempt.

        Returns:
            The background task, or None if the dispatcher is shut down
        """
        return self.dispatcher.submit(
            self._record_and_analyze(
                credential_id, outcome, source_address, user_agent, requester_id
            ),
            name=f"verification:{credential_id}",
        )

    async def _record_and_analyze(
        self,
        credential_id: str,
        outcome: VerificationOutcome,
        source_address: str | None,
        user_agent: str | None,
        requester_id: str | None,
    ) -> None:
        with LogContext(credential_id=credential_id):
            event = await self.event_log.record(
                credential_id,
                outcome,
                source_address,
                user_agent=user_agent,
                requester_id=requester_id,
            )
            if not self.analysis_enabled:
                return
            # Attempts against unknown ids are logged but there is nothing to analyze
            if outcome == VerificationOutcome.INVALID:
                return
            await self.analyzer.analyze(
                credential_id,
                source_address,
                now=event.timestamp if event is not None else None,
            )

    async def verification_history(
        self, credential_id: str, *, page: int = 1, page_size: int = 20
    ) -> Page[VerificationEvent]:
        """Get a credential's verification attempts, newest first.

        Raises:
            CredentialNotFoundError: If no credential has this id
        """
        if await self.credentials.find_by_credential_id(credential_id) is None:
            raise CredentialNotFoundError(credential_id)
        events, total = await self.event_log.history(
            credential_id, limit=page_size, offset=(page - 1) * page_size
        )
        return Page(items=events, page=page, page_size=page_size, total=total)

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def search_suggestions(self, query: str, limit: int | None = None) -> SearchResponse:
        """Resolve an approximate query against the credential catalog."""
        return await self.search_engine.search_suggestions(query, limit)

    # -------------------------------------------------------------------------
    # Alert review
    # -------------------------------------------------------------------------

    async def list_alerts(
        self,
        *,
        status: AlertStatus | None = None,
        severity: AlertSeverity | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[AlertView]:
        """List alerts newest first, each with its credential summary."""
        status_value = status.value if status else None
        severity_value = severity.value if severity else None

        async with store_session(self._session_factory, "list_alerts") as session:
            alerts_repo = FraudAlertRepository(session)
            alerts = await alerts_repo.list_filtered(
                status=status_value,
                severity=severity_value,
                limit=page_size,
                offset=(page - 1) * page_size,
            )
            total = await alerts_repo.count_filtered(status=status_value, severity=severity_value)
            credentials = await CredentialRepository(session).get_many_by_credential_ids(
                [alert.credential_id for alert in alerts]
            )

        items = [AlertView(alert=a, credential=credentials.get(a.credential_id)) for a in alerts]
        return Page(items=items, page=page, page_size=page_size, total=total)

    async def get_alert(self, alert_id: UUID) -> AlertView:
        """Get an alert with its credential summary.

        Raises:
            AlertNotFoundError: If no alert has this id
        """
        alert = await self.alert_manager.get(alert_id)
        credential = await self.credentials.find_by_credential_id(alert.credential_id)
        return AlertView(alert=alert, credential=credential)

    async def resolve_alert(
        self,
        alert_id: UUID,
        status: str,
        *,
        reviewer_id: str | None = None,
        note: str | None = None,
    ) -> FraudAlert:
        """Apply a reviewer decision to an alert."""
        return await self.alert_manager.resolve(
            alert_id, status, reviewer_id=reviewer_id, note=note
        )

    async def fraud_statistics(self) -> FraudStatistics:
        """Get review queue counters and the most urgent pending alerts."""
        async with store_session(self._session_factory, "fraud_statistics") as session:
            alerts_repo = FraudAlertRepository(session)
            by_status = await alerts_repo.count_by_status()
            high_severity = await alerts_repo.count_pending_high()
            recent = await alerts_repo.recent_pending(limit=RECENT_ALERTS_LIMIT)
            high_risk = await CredentialRepository(session).count_by_risk_levels(
                HIGH_RISK_LEVELS
            )

        pending = by_status.get(AlertStatus.PENDING.value, 0)
        total = sum(by_status.values())
        return FraudStatistics(
            pending_count=pending,
            high_severity_count=high_severity,
            reviewed_count=total - pending,
            high_risk_credential_count=high_risk,
            total_alerts=total,
            recent_alerts=recent,
        )

    async def verification_insights(self) -> InsightsReport:
        """Get the most urgent observations on verification traffic."""
        return await self.insights.generate()

    async def list_flagged(self, *, page: int = 1, page_size: int = 20) -> Page[Credential]:
        """List credentials carrying a risk label, most recently flagged first."""
        async with store_session(self._session_factory, "list_flagged") as session:
            repo = CredentialRepository(session)
            credentials = await repo.list_flagged(limit=page_size, offset=(page - 1) * page_size)
            total = await repo.count_flagged()
        return Page(items=credentials, page=page, page_size=page_size, total=total)


def create_fraud_service(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    dispatcher: BackgroundDispatcher | None = None,
) -> FraudDetectionService:
    """Create a fraud detection service from application settings.

    Args:
        session_factory: Factory for per-operation sessions
        settings: Application settings
        dispatcher: Background dispatcher (a new one when omitted)

    Returns:
        Configured FraudDetectionService
    """
    event_log = EventLog(session_factory)
    credentials = CredentialStore(session_factory)
    alert_manager = create_alert_manager(session_factory, settings.fraud_detection)
    analyzer = create_anomaly_analyzer(
        event_log, credentials, alert_manager, settings.fraud_detection
    )
    return FraudDetectionService(
        session_factory,
        event_log=event_log,
        credentials=credentials,
        analyzer=analyzer,
        alert_manager=alert_manager,
        search_engine=SmartSearchEngine(credentials, settings.smart_search),
        dispatcher=dispatcher or BackgroundDispatcher(),
        insights=create_insights_service(session_factory, settings.insights),
        analysis_enabled=settings.fraud_detection.enabled,
    )
