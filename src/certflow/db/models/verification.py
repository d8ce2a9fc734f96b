"""Verification event model (append-only event log)."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, UTCDateTime, utc_now

UNKNOWN_SOURCE = "unknown"


class VerificationOutcome(str, Enum):
    """Result returned to the requester of a verification."""

    VALID = "valid"
    INVALID = "invalid"
    REVOKED = "revoked"


class VerificationEvent(Base):
    """Immutable record of one verification attempt.

    Events are append-only: they are written once per verification request
    and never updated or deleted. The credential id is stored as queried, so
    attempts against unknown ids are logged too.
    """

    __tablename__ = "verification_events"

    # UUIDv7 is time-ordered, making events naturally sortable by ID
    event_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    credential_id: Mapped[str] = mapped_column(String(100), nullable=False)
    outcome: Mapped[str] = mapped_column(String(20), nullable=False)

    source_address: Mapped[str] = mapped_column(
        String(45), nullable=False, default=UNKNOWN_SOURCE
    )  # IPv6 support
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    requester_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_verification_credential_time", "credential_id", "timestamp"),
        Index("idx_verification_outcome_time", "outcome", "timestamp"),
        Index("idx_verification_source_time", "source_address", "timestamp"),
    )

    def __repr__(self) -> str:
        return (
            f"<VerificationEvent(credential={self.credential_id}, "
            f"outcome={self.outcome}, source={self.source_address})>"
        )
