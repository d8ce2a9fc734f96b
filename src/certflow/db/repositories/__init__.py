"""Database repositories for clean data access."""

from .base import AppendOnlyRepository, BaseRepository
from .credential import FLAGGED_LEVELS, CredentialRepository
from .fraud_alert import FraudAlertRepository
from .verification import VerificationEventRepository

__all__ = [
    "AppendOnlyRepository",
    "BaseRepository",
    "CredentialRepository",
    "FLAGGED_LEVELS",
    "FraudAlertRepository",
    "VerificationEventRepository",
]
