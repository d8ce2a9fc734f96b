"""Alert lifecycle manager for fraud alerts.

Decides, using a per-credential cooldown, whether the anomalies of an
analysis run become persisted alerts, and applies reviewer resolutions
with their feedback onto the credential's risk label.

State machine per alert:

    pending -> reviewed | dismissed | confirmed

All three resolution statuses are terminal.
"""

from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any, NamedTuple
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certflow.config.settings import FraudDetectionConfig
from certflow.core.exceptions import (
    AlertNotFoundError,
    InvalidStatusError,
    InvalidTransitionError,
    TransientStoreError,
)
from certflow.core.logging import get_logger
from certflow.db.models import (
    ALERT_TRANSITIONS,
    RESOLUTION_STATUSES,
    AlertKind,
    AlertSeverity,
    AlertStatus,
    FraudAlert,
    utc_now,
)
from certflow.db.repositories import CredentialRepository, FraudAlertRepository

from .store import store_session

logger = get_logger(__name__)


class AlertPolicy(BaseModel):
    """Alert creation policy."""

    cooldown_minutes: int = Field(
        default=5, ge=0, description="Minimum minutes between alerts for one credential"
    )

    @classmethod
    def from_settings(cls, config: FraudDetectionConfig) -> "AlertPolicy":
        """Build from the fraud detection settings section."""
        return cls(cooldown_minutes=config.alert_cooldown_minutes)

    @property
    def cooldown(self) -> timedelta:
        return timedelta(minutes=self.cooldown_minutes)


class AlertDraft(NamedTuple):
    """Alert content produced by one anomalous signal, not yet stored."""

    kind: AlertKind
    severity: AlertSeverity
    details: dict[str, Any]


def parse_resolution_status(status: str | AlertStatus) -> AlertStatus:
    """Parse a requested resolution status.

    Raises:
        InvalidStatusError: If the value is not reviewed, dismissed or confirmed
    """
    allowed = [s.value for s in RESOLUTION_STATUSES]
    try:
        parsed = AlertStatus(status)
    except ValueError:
        raise InvalidStatusError(str(status), allowed) from None
    if parsed not in RESOLUTION_STATUSES:
        raise InvalidStatusError(parsed.value, allowed)
    return parsed


class AlertLifecycleManager:
    """Creates fraud alerts and applies reviewer decisions.

    Creation is a best-effort side effect of verification traffic and
    never raises. Resolution is a synchronous administrator action and
    surfaces every failure.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy: AlertPolicy | None = None,
    ):
        """Initialize the manager.

        Args:
            session_factory: Factory for per-operation sessions
            policy: Cooldown policy
        """
        self.policy = policy or AlertPolicy()
        self._session_factory = session_factory

    async def should_alert(self, credential_id: str, now: datetime | None = None) -> bool:
        """Check that no alert of any kind was triggered inside the cooldown.

        Read-only; analysis runs go through create_if_quiet, which makes the
        same check atomically with the insert.

        Raises:
            TransientStoreError: If the alert store cannot be read
        """
        since = (now or utc_now()) - self.policy.cooldown
        async with store_session(self._session_factory, "should_alert") as session:
            recent = await FraudAlertRepository(session).exists_since(credential_id, since)
        return not recent

    async def create(
        self,
        credential_id: str,
        kind: AlertKind,
        severity: AlertSeverity,
        details: dict[str, Any],
        *,
        triggered_at: datetime | None = None,
    ) -> FraudAlert | None:
        """Create a pending alert.

        Returns:
            The created alert, or None if it could not be stored
        """
        alert = FraudAlert(
            credential_id=credential_id,
            alert_kind=AlertKind(kind).value,
            severity=AlertSeverity(severity).value,
            status=AlertStatus.PENDING.value,
            details=details,
            triggered_at=triggered_at or utc_now(),
        )
        try:
            async with store_session(self._session_factory, "create_alert") as session:
                alert = await FraudAlertRepository(session).create(alert)
        except TransientStoreError as e:
            logger.error(
                "fraud_alert_create_failed",
                credential_id=credential_id,
                alert_kind=alert.alert_kind,
                error=str(e),
                exc_info=True,
            )
            return None

        logger.info(
            "fraud_alert_created",
            alert_id=str(alert.alert_id),
            credential_id=credential_id,
            alert_kind=alert.alert_kind,
            severity=alert.severity,
        )
        return alert

    async def create_if_quiet(
        self,
        credential_id: str,
        drafts: Sequence[AlertDraft],
        *,
        triggered_at: datetime | None = None,
    ) -> list[FraudAlert]:
        """Create the alerts of one analysis run unless the cooldown is active.

        The cooldown claim and every insert share one transaction, so
        concurrent runs for the same credential store at most one batch
        per cooldown window.

        Returns:
            The created alerts; empty inside the cooldown or if the store failed
        """
        if not drafts:
            return []
        now = triggered_at or utc_now()
        alerts = [
            FraudAlert(
                credential_id=credential_id,
                alert_kind=AlertKind(draft.kind).value,
                severity=AlertSeverity(draft.severity).value,
                status=AlertStatus.PENDING.value,
                details=draft.details,
                triggered_at=now,
            )
            for draft in drafts
        ]
        try:
            async with store_session(self._session_factory, "create_alerts") as session:
                claimed = await CredentialRepository(session).claim_alert_slot(
                    credential_id, now, now - self.policy.cooldown
                )
                if not claimed:
                    await session.rollback()
                    logger.debug("fraud_alert_suppressed", reason="cooldown")
                    return []
                repository = FraudAlertRepository(session)
                for alert in alerts:
                    await repository.create(alert, commit=False)
                await session.commit()
        except TransientStoreError as e:
            logger.error(
                "fraud_alert_create_failed",
                credential_id=credential_id,
                alert_kinds=[alert.alert_kind for alert in alerts],
                error=str(e),
                exc_info=True,
            )
            return []

        for alert in alerts:
            logger.info(
                "fraud_alert_created",
                alert_id=str(alert.alert_id),
                credential_id=credential_id,
                alert_kind=alert.alert_kind,
                severity=alert.severity,
            )
        return alerts

    async def get(self, alert_id: UUID) -> FraudAlert:
        """Get an alert.

        Raises:
            AlertNotFoundError: If no alert has this id
        """
        async with store_session(self._session_factory, "get_alert") as session:
            alert = await FraudAlertRepository(session).get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    async def resolve(
        self,
        alert_id: UUID,
        new_status: str | AlertStatus,
        *,
        reviewer_id: str | None = None,
        note: str | None = None,
        now: datetime | None = None,
    ) -> FraudAlert:
        """Apply a reviewer decision to an alert.

        Resolving an alert to the status it already has is a no-op.
        Dismissing the last pending alert of a credential resets the
        credential's risk level to none in the same transaction; its
        flagged_at stamp is kept.

        Raises:
            InvalidStatusError: If new_status is not a resolution status
            AlertNotFoundError: If no alert has this id
            InvalidTransitionError: If the alert already holds another decision
            TransientStoreError: If the store cannot be read or written
        """
        status = parse_resolution_status(new_status)

        async with store_session(self._session_factory, "resolve_alert") as session:
            alerts = FraudAlertRepository(session)
            alert = await alerts.get(alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)

            current = AlertStatus(alert.status)
            if current == status:
                return alert
            if status not in ALERT_TRANSITIONS[current]:
                raise InvalidTransitionError(alert_id, current.value, status.value)

            await alerts.update(
                alert,
                {
                    "status": status.value,
                    "reviewer_id": reviewer_id,
                    "reviewed_at": now or utc_now(),
                    "resolution_note": note,
                },
                commit=False,
            )

            risk_reset = False
            if status == AlertStatus.DISMISSED:
                if await alerts.count_pending(alert.credential_id) == 0:
                    await CredentialRepository(session).reset_risk_level(
                        alert.credential_id, commit=False
                    )
                    risk_reset = True

            await session.commit()

        logger.info(
            "fraud_alert_resolved",
            alert_id=str(alert_id),
            credential_id=alert.credential_id,
            status=status.value,
            reviewer_id=reviewer_id,
            risk_reset=risk_reset,
        )
        return alert


def create_alert_manager(
    session_factory: async_sessionmaker[AsyncSession],
    config: FraudDetectionConfig | None = None,
) -> AlertLifecycleManager:
    """Create an alert manager from the fraud detection settings section."""
    policy = AlertPolicy.from_settings(config) if config else None
    return AlertLifecycleManager(session_factory, policy)
