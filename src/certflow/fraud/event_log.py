"""Append-only log of verification attempts."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from certflow.core.exceptions import TransientStoreError
from certflow.core.logging import get_logger
from certflow.db.models import UNKNOWN_SOURCE, VerificationEvent, VerificationOutcome, utc_now
from certflow.db.repositories import VerificationEventRepository

from .store import store_session

logger = get_logger(__name__)


class EventLog:
    """Verification event log.

    Recording is best-effort: a failed write is retried briefly, then
    logged and dropped so the verification request is never affected.
    Reads raise TransientStoreError on database failure.

    Example:
        event_log = EventLog(session_factory)
        await event_log.record("CF-2024-001", VerificationOutcome.VALID, "203.0.113.7")
        recent = await event_log.count_since("CF-2024-001", since)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        max_attempts: int = 3,
    ):
        """Initialize the event log.

        Args:
            session_factory: Factory for per-operation sessions
            max_attempts: Write attempts before an event is dropped
        """
        self._session_factory = session_factory
        self._max_attempts = max_attempts

    async def record(
        self,
        credential_id: str,
        outcome: VerificationOutcome,
        source_address: str | None = None,
        *,
        user_agent: str | None = None,
        requester_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> VerificationEvent | None:
        """Append a verification event.

        Returns:
            The stored event, or None when it could not be written
        """
        timestamp = timestamp or utc_now()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=0.05, max=0.5),
                retry=retry_if_exception_type(TransientStoreError),
            ):
                with attempt:
                    return await self._append(
                        VerificationEvent(
                            credential_id=credential_id,
                            outcome=VerificationOutcome(outcome).value,
                            source_address=source_address or UNKNOWN_SOURCE,
                            user_agent=user_agent,
                            requester_id=requester_id,
                            timestamp=timestamp,
                        )
                    )
        except RetryError as e:
            logger.warning(
                "verification_event_dropped",
                credential_id=credential_id,
                outcome=VerificationOutcome(outcome).value,
                attempts=self._max_attempts,
                error=str(e.last_attempt.exception()),
            )
        return None

    async def _append(self, event: VerificationEvent) -> VerificationEvent:
        async with store_session(self._session_factory, "append_event") as session:
            return await VerificationEventRepository(session).append(event)

    async def count_since(self, credential_id: str, since: datetime) -> int:
        """Count a credential's events at or after ``since``."""
        async with store_session(self._session_factory, "count_since") as session:
            return await VerificationEventRepository(session).count_since(credential_id, since)

    async def distinct_sources_since(self, credential_id: str, since: datetime) -> set[str]:
        """Get the distinct source addresses of a credential's events since ``since``."""
        async with store_session(self._session_factory, "distinct_sources_since") as session:
            return await VerificationEventRepository(session).distinct_sources_since(
                credential_id, since
            )

    async def history(
        self, credential_id: str, *, limit: int = 20, offset: int = 0
    ) -> tuple[list[VerificationEvent], int]:
        """Get a page of a credential's events, newest first, and the total."""
        async with store_session(self._session_factory, "history") as session:
            repo = VerificationEventRepository(session)
            events = await repo.history(credential_id, limit=limit, offset=offset)
            total = await repo.count_for(credential_id)
        return events, total
