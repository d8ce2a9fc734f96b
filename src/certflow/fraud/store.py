"""Store adapters used by fraud detection and search.

Every operation opens its own session from the session factory, so
background analysis never shares a session with the request that
triggered it. Database failures surface as TransientStoreError.
"""

from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certflow.core.exceptions import TransientStoreError
from certflow.db.models import Credential, RiskLevel
from certflow.db.repositories import CredentialRepository
from certflow.search.types import SearchCandidate


@asynccontextmanager
async def store_session(
    session_factory: async_sessionmaker[AsyncSession],
    operation: str,
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session, translating database errors into TransientStoreError.

    Args:
        session_factory: Factory to open the session from
        operation: Name of the store operation, reported on failure
    """
    try:
        async with session_factory() as session:
            yield session
    except SQLAlchemyError as e:
        raise TransientStoreError(str(e), operation=operation) from e


class CredentialStore:
    """Credential catalog access for the analyzer, alert manager and search."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_by_credential_id(self, credential_id: str) -> Credential | None:
        async with store_session(self._session_factory, "find_credential") as session:
            return await CredentialRepository(session).get_by_credential_id(credential_id)

    async def record_verification(
        self, credential_id: str, source_address: str, at: datetime
    ) -> bool:
        async with store_session(self._session_factory, "record_verification") as session:
            return await CredentialRepository(session).record_verification(
                credential_id, source_address, at
            )

    async def apply_risk_level(
        self, credential_id: str, level: RiskLevel, at: datetime | None = None
    ) -> bool:
        async with store_session(self._session_factory, "apply_risk_level") as session:
            return await CredentialRepository(session).apply_risk_level(
                credential_id, level, at
            )

    async def reset_risk_level(self, credential_id: str) -> bool:
        async with store_session(self._session_factory, "reset_risk_level") as session:
            return await CredentialRepository(session).reset_risk_level(credential_id)

    # Search candidate source

    async def list_candidates_matching(
        self, prefix: str, text: str, *, limit: int
    ) -> Sequence[SearchCandidate]:
        async with store_session(self._session_factory, "list_candidates_matching") as session:
            credentials = await CredentialRepository(session).list_candidates_matching(
                prefix, text, limit=limit
            )
        return [SearchCandidate.model_validate(c) for c in credentials]

    async def list_candidates(self, *, limit: int) -> Sequence[SearchCandidate]:
        async with store_session(self._session_factory, "list_candidates") as session:
            credentials = await CredentialRepository(session).list_candidates(limit=limit)
        return [SearchCandidate.model_validate(c) for c in credentials]

    async def list_credential_ids(self, *, limit: int) -> Sequence[str]:
        async with store_session(self._session_factory, "list_credential_ids") as session:
            return await CredentialRepository(session).list_credential_ids(limit=limit)
