"""Fraud alert repository: cooldown checks, review queue and statistics."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import case, func, select

from certflow.db.models.fraud_alert import AlertSeverity, AlertStatus, FraudAlert

from .base import BaseRepository


def _severity_rank():
    return case(
        (FraudAlert.severity == AlertSeverity.HIGH.value, 3),
        (FraudAlert.severity == AlertSeverity.MEDIUM.value, 2),
        else_=1,
    )


class FraudAlertRepository(BaseRepository[FraudAlert, UUID]):
    """Repository for fraud alerts."""

    async def exists_since(self, credential_id: str, since: datetime) -> bool:
        """Check if any alert for a credential was triggered at or after ``since``."""
        stmt = (
            select(FraudAlert.alert_id)
            .where(
                FraudAlert.credential_id == credential_id,
                FraudAlert.triggered_at >= since,
            )
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def count_pending(self, credential_id: str) -> int:
        """Count a credential's alerts still awaiting review."""
        stmt = select(func.count(FraudAlert.alert_id)).where(
            FraudAlert.credential_id == credential_id,
            FraudAlert.status == AlertStatus.PENDING.value,
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    def _filtered(self, stmt, status: str | None, severity: str | None):
        if status:
            stmt = stmt.where(FraudAlert.status == status)
        if severity:
            stmt = stmt.where(FraudAlert.severity == severity)
        return stmt

    async def list_filtered(
        self,
        *,
        status: str | None = None,
        severity: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[FraudAlert]:
        """List alerts newest first, ties broken by severity."""
        stmt = self._filtered(select(FraudAlert), status, severity)
        stmt = (
            stmt.order_by(FraudAlert.triggered_at.desc(), _severity_rank().desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_filtered(
        self, *, status: str | None = None, severity: str | None = None
    ) -> int:
        """Count alerts matching the same filters as list_filtered."""
        stmt = self._filtered(select(func.count(FraudAlert.alert_id)), status, severity)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def count_by_status(self) -> dict[str, int]:
        """Count alerts grouped by status."""
        stmt = select(FraudAlert.status, func.count(FraudAlert.alert_id)).group_by(
            FraudAlert.status
        )
        result = await self.db.execute(stmt)
        return {status: count for status, count in result.all()}

    async def count_pending_high(self) -> int:
        """Count pending alerts of high severity."""
        stmt = select(func.count(FraudAlert.alert_id)).where(
            FraudAlert.status == AlertStatus.PENDING.value,
            FraudAlert.severity == AlertSeverity.HIGH.value,
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def recent_pending(self, *, limit: int = 10) -> list[FraudAlert]:
        """Get pending alerts, most severe first, then newest."""
        stmt = (
            select(FraudAlert)
            .where(FraudAlert.status == AlertStatus.PENDING.value)
            .order_by(_severity_rank().desc(), FraudAlert.triggered_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
