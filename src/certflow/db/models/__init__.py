"""Database models for certflow."""

from .base import Base, PortableJSON, PortableUUID, TimestampMixin, UTCDateTime, utc_now
from .credential import Credential, CredentialStatus, RiskLevel
from .fraud_alert import (
    ALERT_TRANSITIONS,
    RESOLUTION_STATUSES,
    AlertKind,
    AlertSeverity,
    AlertStatus,
    FraudAlert,
)
from .verification import UNKNOWN_SOURCE, VerificationEvent, VerificationOutcome

__all__ = [
    "Base",
    "PortableJSON",
    "PortableUUID",
    "TimestampMixin",
    "UTCDateTime",
    "utc_now",
    "Credential",
    "CredentialStatus",
    "RiskLevel",
    "ALERT_TRANSITIONS",
    "RESOLUTION_STATUSES",
    "AlertKind",
    "AlertSeverity",
    "AlertStatus",
    "FraudAlert",
    "UNKNOWN_SOURCE",
    "VerificationEvent",
    "VerificationOutcome",
]
