"""Credential (certificate) model with its fraud risk label."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from .base import Base, PortableUUID, TimestampMixin, UTCDateTime


class CredentialStatus(str, Enum):
    """Lifecycle status of an issued credential."""

    ACTIVE = "active"
    REVOKED = "revoked"


class RiskLevel(str, Enum):
    """Ordinal classification of suspicious verification activity."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Position in the ordering none < low < medium < high."""
        return _RISK_ORDER.index(self)

    @classmethod
    def highest(cls, *levels: "RiskLevel") -> "RiskLevel":
        """Get the highest of the given levels (NONE when empty)."""
        return max(levels, key=lambda level: level.rank, default=cls.NONE)


_RISK_ORDER = [RiskLevel.NONE, RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH]


class Credential(Base, TimestampMixin):
    """Internship completion certificate.

    The record itself is owned by issuance; fraud detection only touches
    the risk label columns (risk_level, verification_count, last_verified_at,
    last_source_address, flagged_at, last_alert_at) through atomic updates.
    """

    __tablename__ = "credentials"

    id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    credential_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    # Holder and programme
    holder_name: Mapped[str] = mapped_column(String(255), nullable=False)
    holder_email: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CredentialStatus.ACTIVE.value
    )

    # Risk label
    risk_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RiskLevel.NONE.value
    )
    verification_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_verified_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_source_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    flagged_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_alert_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        Index("idx_credential_holder_email", "holder_email", "status"),
        Index("idx_credential_status_created", "status", "created_at"),
        Index("idx_credential_risk", "risk_level"),
    )

    @property
    def is_revoked(self) -> bool:
        """Check if the credential has been revoked."""
        return self.status == CredentialStatus.REVOKED.value

    def __repr__(self) -> str:
        return (
            f"<Credential(id={self.credential_id}, status={self.status}, "
            f"risk={self.risk_level})>"
        )
