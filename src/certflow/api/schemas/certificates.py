"""API schemas for certificate verification, search and history."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from certflow.db.models import VerificationOutcome
from certflow.fraud import Page, VerificationReceipt
from certflow.search import Correction, RankedMatch, SearchResponse
from certflow.utils.masking import mask_email

from .common import PaginationMeta


class CertificateVerificationResponse(BaseModel):
    """Public view of a verified certificate.

    The holder's email is masked; risk labels are never exposed publicly.
    """

    credential_id: str
    holder_name: str
    holder_email: str = Field(..., description="Masked holder email")
    category: str
    start_date: date | None = None
    end_date: date | None = None
    status: str
    is_revoked: bool
    outcome: VerificationOutcome

    model_config = {"json_schema_extra": {"example": {
        "credential_id": "CF-2024-001",
        "holder_name": "Jane Doe",
        "holder_email": "ja***@ex***.com",
        "category": "Web Development",
        "start_date": "2024-01-08",
        "end_date": "2024-03-29",
        "status": "active",
        "is_revoked": False,
        "outcome": "valid",
    }}}

    @classmethod
    def from_receipt(cls, receipt: VerificationReceipt) -> "CertificateVerificationResponse":
        credential = receipt.credential
        return cls(
            credential_id=credential.credential_id,
            holder_name=credential.holder_name,
            holder_email=mask_email(credential.holder_email),
            category=credential.category,
            start_date=credential.start_date,
            end_date=credential.end_date,
            status=credential.status,
            is_revoked=credential.is_revoked,
            outcome=receipt.outcome,
        )


class SearchSuggestionsResponse(BaseModel):
    """Ranked suggestions for an administrator search query."""

    query: str
    normalized_query: str | None = Field(
        default=None, description="Query after look-alike normalization, when different"
    )
    suggestions: list[RankedMatch] = Field(default_factory=list)
    correction: Correction | None = None
    total_found: int = 0

    @classmethod
    def from_result(cls, result: SearchResponse) -> "SearchSuggestionsResponse":
        return cls(
            query=result.query,
            normalized_query=result.normalized_query,
            suggestions=result.suggestions,
            correction=result.correction,
            total_found=result.total_found,
        )


class VerificationEventResponse(BaseModel):
    """One recorded verification attempt."""

    model_config = ConfigDict(from_attributes=True)

    event_id: UUID
    outcome: VerificationOutcome
    source_address: str
    user_agent: str | None = None
    requester_id: str | None = None
    timestamp: datetime


class VerificationHistoryResponse(BaseModel):
    """A page of a certificate's verification attempts, newest first."""

    credential_id: str
    events: list[VerificationEventResponse]
    pagination: PaginationMeta

    @classmethod
    def from_page(cls, credential_id: str, page: Page) -> "VerificationHistoryResponse":
        return cls(
            credential_id=credential_id,
            events=[VerificationEventResponse.model_validate(e) for e in page.items],
            pagination=PaginationMeta.from_page(page),
        )
