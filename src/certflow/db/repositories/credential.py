"""Credential repository: lookups, search candidates and risk label updates."""

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import case, exists, func, literal, or_, select, update

from certflow.db.models.base import UTCDateTime, utc_now
from certflow.db.models.credential import Credential, RiskLevel
from certflow.db.models.fraud_alert import FraudAlert

from .base import BaseRepository

FLAGGED_LEVELS = (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH)


class CredentialRepository(BaseRepository[Credential, UUID]):
    """Repository for credentials.

    Risk label writes are single UPDATE statements (counter increments and
    conditional stamps evaluated by the database) so concurrent analyses
    never need an in-process lock.
    """

    async def get_by_credential_id(self, credential_id: str) -> Credential | None:
        """Get a credential by its public identifier."""
        stmt = select(Credential).where(Credential.credential_id == credential_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many_by_credential_ids(
        self, credential_ids: Sequence[str]
    ) -> dict[str, Credential]:
        """Get credentials by public identifier, keyed by that identifier."""
        if not credential_ids:
            return {}
        stmt = select(Credential).where(Credential.credential_id.in_(set(credential_ids)))
        result = await self.db.execute(stmt)
        return {c.credential_id: c for c in result.scalars().all()}

    async def record_verification(
        self,
        credential_id: str,
        source_address: str,
        at: datetime,
        *,
        commit: bool = True,
    ) -> bool:
        """Atomically bump the verification counter and last-seen fields.

        Returns:
            True if a credential was updated
        """
        stmt = (
            update(Credential)
            .where(Credential.credential_id == credential_id)
            .values(
                verification_count=Credential.verification_count + 1,
                last_verified_at=at,
                last_source_address=source_address,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if commit:
            await self.db.commit()
        return result.rowcount > 0

    async def apply_risk_level(
        self,
        credential_id: str,
        level: RiskLevel,
        at: datetime | None = None,
        *,
        commit: bool = True,
    ) -> bool:
        """Set the risk level, stamping flagged_at on the first non-none level.

        flagged_at is only written while it is still NULL, so the first
        flag time survives later updates.
        """
        values: dict = {"risk_level": level.value}
        if level != RiskLevel.NONE:
            values["flagged_at"] = case(
                (Credential.flagged_at.is_(None), literal(at or utc_now(), UTCDateTime())),
                else_=Credential.flagged_at,
            )

        stmt = (
            update(Credential)
            .where(Credential.credential_id == credential_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if commit:
            await self.db.commit()
        return result.rowcount > 0

    async def reset_risk_level(self, credential_id: str, *, commit: bool = True) -> bool:
        """Reset the risk level to none, leaving flagged_at as history."""
        return await self.apply_risk_level(credential_id, RiskLevel.NONE, commit=commit)

    async def claim_alert_slot(
        self, credential_id: str, at: datetime, since: datetime
    ) -> bool:
        """Claim the alert cooldown slot of a credential.

        The claim is one conditional UPDATE: it succeeds only when neither
        the last claim nor any stored alert falls at or after ``since``.
        The row stays write-locked until the caller's transaction ends, so
        concurrent claims for one credential serialize and at most one of
        them wins per cooldown window. Never commits.

        Returns:
            True if the slot was claimed
        """
        recent_alert = exists().where(
            FraudAlert.credential_id == credential_id,
            FraudAlert.triggered_at >= since,
        )
        stmt = (
            update(Credential)
            .where(
                Credential.credential_id == credential_id,
                or_(Credential.last_alert_at.is_(None), Credential.last_alert_at < since),
                ~recent_alert,
            )
            .values(last_alert_at=at)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount > 0

    async def list_candidates_matching(
        self,
        prefix: str,
        text: str,
        *,
        limit: int = 50,
    ) -> list[Credential]:
        """List credentials loosely matching a search query, newest first.

        Matches credential ids starting with ``prefix`` and ids, holder
        names or holder emails containing ``text`` (case-insensitive).
        """
        conditions = []
        if prefix:
            conditions.append(Credential.credential_id.istartswith(prefix, autoescape=True))
        if text:
            conditions.extend(
                [
                    Credential.credential_id.icontains(text, autoescape=True),
                    Credential.holder_name.icontains(text, autoescape=True),
                    Credential.holder_email.icontains(text, autoescape=True),
                ]
            )
        if not conditions:
            return []

        stmt = (
            select(Credential)
            .where(or_(*conditions))
            .order_by(Credential.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_candidates(self, *, limit: int = 500) -> list[Credential]:
        """List the most recent credentials for a broad fuzzy scan."""
        return await self.list(limit=limit, order_by="created_at", descending=True)

    async def list_credential_ids(self, *, limit: int = 1000) -> list[str]:
        """List credential identifiers, newest first."""
        stmt = (
            select(Credential.credential_id)
            .order_by(Credential.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_risk_levels(self, levels: Sequence[RiskLevel]) -> int:
        """Count credentials whose risk level is one of ``levels``."""
        stmt = select(func.count(Credential.id)).where(
            Credential.risk_level.in_([level.value for level in levels])
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def list_flagged(self, *, limit: int = 20, offset: int = 0) -> list[Credential]:
        """List credentials with a non-none risk level, most recently flagged first."""
        risk_rank = case(
            (Credential.risk_level == RiskLevel.HIGH.value, 3),
            (Credential.risk_level == RiskLevel.MEDIUM.value, 2),
            else_=1,
        )
        stmt = (
            select(Credential)
            .where(Credential.risk_level.in_([level.value for level in FLAGGED_LEVELS]))
            .order_by(Credential.flagged_at.desc(), risk_rank.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_flagged(self) -> int:
        """Count credentials with a non-none risk level."""
        return await self.count_by_risk_levels(FLAGGED_LEVELS)
