"""Verification event repository for the append-only event log."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Row, distinct, func, select

from certflow.db.models.verification import (
    UNKNOWN_SOURCE,
    VerificationEvent,
    VerificationOutcome,
)

from .base import AppendOnlyRepository


class VerificationEventRepository(AppendOnlyRepository[VerificationEvent, UUID]):
    """Repository for verification events.

    Exposes appends, windowed reads and aggregates only; events are never
    updated or deleted.
    """

    async def append(self, event: VerificationEvent) -> VerificationEvent:
        """Append an event to the log."""
        return await self.create(event)

    async def count_since(self, credential_id: str, since: datetime) -> int:
        """Count events for a credential at or after ``since``."""
        stmt = select(func.count(VerificationEvent.event_id)).where(
            VerificationEvent.credential_id == credential_id,
            VerificationEvent.timestamp >= since,
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def distinct_sources_since(self, credential_id: str, since: datetime) -> set[str]:
        """Get the distinct source addresses for a credential since ``since``."""
        stmt = select(distinct(VerificationEvent.source_address)).where(
            VerificationEvent.credential_id == credential_id,
            VerificationEvent.timestamp >= since,
        )
        result = await self.db.execute(stmt)
        return {address for address in result.scalars().all() if address}

    async def history(
        self,
        credential_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> list[VerificationEvent]:
        """Get a credential's events, newest first."""
        stmt = (
            select(VerificationEvent)
            .where(VerificationEvent.credential_id == credential_id)
            .order_by(VerificationEvent.timestamp.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_for(self, credential_id: str) -> int:
        """Count all events for a credential."""
        stmt = select(func.count(VerificationEvent.event_id)).where(
            VerificationEvent.credential_id == credential_id
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    # Aggregates across credentials

    async def most_verified_since(self, since: datetime, *, limit: int = 5) -> list[Row]:
        """Rank credentials by valid verifications at or after ``since``.

        Returns:
            Rows of (credential_id, verification_count, last_verified_at),
            highest count first
        """
        verification_count = func.count(VerificationEvent.event_id).label("verification_count")
        stmt = (
            select(
                VerificationEvent.credential_id,
                verification_count,
                func.max(VerificationEvent.timestamp).label("last_verified_at"),
            )
            .where(
                VerificationEvent.timestamp >= since,
                VerificationEvent.outcome == VerificationOutcome.VALID.value,
            )
            .group_by(VerificationEvent.credential_id)
            .order_by(verification_count.desc(), VerificationEvent.credential_id)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.all())

    async def busiest_sources_since(
        self, since: datetime, *, min_requests: int, limit: int = 5
    ) -> list[Row]:
        """Rank known source addresses by attempts at or after ``since``.

        Returns:
            Rows of (source_address, request_count, credential_count) for
            sources with at least ``min_requests`` attempts, busiest first
        """
        request_count = func.count(VerificationEvent.event_id).label("request_count")
        stmt = (
            select(
                VerificationEvent.source_address,
                request_count,
                func.count(distinct(VerificationEvent.credential_id)).label("credential_count"),
            )
            .where(
                VerificationEvent.timestamp >= since,
                VerificationEvent.source_address != UNKNOWN_SOURCE,
            )
            .group_by(VerificationEvent.source_address)
            .having(func.count(VerificationEvent.event_id) >= min_requests)
            .order_by(request_count.desc(), VerificationEvent.source_address)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.all())

    async def outcome_counts_since(self, since: datetime) -> dict[str, int]:
        """Count all events at or after ``since``, grouped by outcome."""
        stmt = (
            select(VerificationEvent.outcome, func.count(VerificationEvent.event_id))
            .where(VerificationEvent.timestamp >= since)
            .group_by(VerificationEvent.outcome)
        )
        result = await self.db.execute(stmt)
        return {outcome: count for outcome, count in result.all()}
