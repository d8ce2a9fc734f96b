"""Certificate verification, search and history endpoints.

- GET /certificates/search - Smart search (reviewer)
- GET /certificates/{credential_id} - Public verification
- GET /certificates/{credential_id}/history - Verification attempts (reviewer)
"""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from certflow.api.dependencies import AppSettings, FraudService, ReviewerId
from certflow.api.middleware.logging import get_client_ip
from certflow.api.schemas.certificates import (
    CertificateVerificationResponse,
    SearchSuggestionsResponse,
    VerificationHistoryResponse,
)

router = APIRouter(prefix="/certificates", tags=["certificates"])


@router.get(
    "/search",
    response_model=SearchSuggestionsResponse,
    summary="Smart certificate search",
    description="""
    Resolve an approximate, possibly mistyped query against certificate ids,
    holder names and holder emails.

    Queries shorter than two characters return an empty suggestion list.
    When no suggestion is strong, the closest known certificate id is
    offered as a correction.
    """,
    responses={
        200: {"description": "Ranked suggestions"},
        401: {"description": "Missing or invalid reviewer token"},
    },
)
async def search_certificates(
    service: FraudService,
    reviewer_id: ReviewerId,
    q: Annotated[str, Query(max_length=200, description="Search text")] = "",
    limit: Annotated[int | None, Query(ge=1, description="Maximum suggestions")] = None,
) -> SearchSuggestionsResponse:
    """Search certificates with fuzzy matching."""
    result = await service.search_suggestions(q, limit)
    return SearchSuggestionsResponse.from_result(result)


@router.get(
    "/{credential_id}",
    response_model=CertificateVerificationResponse,
    summary="Verify a certificate",
    description="""
    Public verification of a certificate by id. Every attempt is recorded
    and analyzed for abusive patterns in the background. The holder's
    email is masked in the response.
    """,
    responses={
        200: {"description": "Certificate found"},
        404: {"description": "Certificate not found"},
    },
)
async def verify_certificate(
    credential_id: str,
    request: Request,
    service: FraudService,
    settings: AppSettings,
) -> CertificateVerificationResponse:
    """Verify a certificate and record the attempt."""
    receipt = await service.verify_credential(
        credential_id,
        get_client_ip(request, settings.TRUSTED_PROXIES),
        user_agent=request.headers.get("User-Agent"),
    )
    return CertificateVerificationResponse.from_receipt(receipt)


@router.get(
    "/{credential_id}/history",
    response_model=VerificationHistoryResponse,
    summary="Certificate verification history",
    description="Recorded verification attempts for a certificate, newest first.",
    responses={
        200: {"description": "Page of verification attempts"},
        404: {"description": "Certificate not found"},
    },
)
async def verification_history(
    credential_id: str,
    service: FraudService,
    reviewer_id: ReviewerId,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
) -> VerificationHistoryResponse:
    """List a certificate's verification attempts."""
    result = await service.verification_history(credential_id, page=page, page_size=page_size)
    return VerificationHistoryResponse.from_page(credential_id, result)
