"""API schemas for request/response validation."""

from .certificates import (
    CertificateVerificationResponse,
    SearchSuggestionsResponse,
    VerificationEventResponse,
    VerificationHistoryResponse,
)
from .common import PaginationMeta
from .errors import APIError, ErrorCode
from .fraud import (
    AlertListResponse,
    AlertResolveRequest,
    AlertResponse,
    CredentialSummary,
    FlaggedCredentialListResponse,
    FlaggedCredentialResponse,
    FraudStatsResponse,
)
from .health import ComponentHealth, HealthDetailResponse, HealthResponse, HealthStatus

__all__ = [
    # Error schemas
    "APIError",
    "ErrorCode",
    # Health schemas
    "ComponentHealth",
    "HealthStatus",
    "HealthResponse",
    "HealthDetailResponse",
    # Shared
    "PaginationMeta",
    # Certificate schemas
    "CertificateVerificationResponse",
    "SearchSuggestionsResponse",
    "VerificationEventResponse",
    "VerificationHistoryResponse",
    # Fraud schemas
    "AlertListResponse",
    "AlertResolveRequest",
    "AlertResponse",
    "CredentialSummary",
    "FlaggedCredentialListResponse",
    "FlaggedCredentialResponse",
    "FraudStatsResponse",
]
