"""FastAPI dependencies for API endpoints."""

import hashlib
import hmac
import re
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request

from certflow.config.settings import Settings
from certflow.core.exceptions import AuthenticationError, AuthorizationError
from certflow.core.logging import bind_contextvars
from certflow.fraud import FraudDetectionService

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def get_settings_from_app(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


def get_fraud_service(request: Request) -> FraudDetectionService:
    """Get the fraud detection service stored on the application."""
    return request.app.state.fraud_service


def get_request_id(request: Request) -> str:
    """Get the request ID set by RequestLoggingMiddleware."""
    return str(getattr(request.state, "request_id", "unknown"))


def reviewer_id_from_token(token: str) -> str:
    """Derive a stable reviewer ID from a bearer token.

    The token itself is never stored; a deterministic UUID built from its
    SHA-256 digest identifies the reviewer on resolved alerts.
    """
    token_hash = hashlib.sha256(token.encode()).hexdigest()
    return str(UUID(token_hash[:32]))


async def require_reviewer(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings_from_app)],
) -> str:
    """Require a bearer token carrying reviewer authority.

    Returns:
        The reviewer ID derived from the token

    Raises:
        AuthenticationError: If the header is missing, malformed or the token unknown
        AuthorizationError: If reviewer access is not configured
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise AuthenticationError("Missing Authorization header")

    match = _BEARER.match(auth_header)
    if not match:
        raise AuthenticationError("Invalid Authorization header format")
    token = match.group(1).strip()

    tokens = settings.reviewer_tokens()
    if not tokens:
        # In development without keys configured, accept any non-empty token
        if not (settings.DEBUG and token):
            raise AuthorizationError("reviewer")
    elif not any(hmac.compare_digest(token.encode(), known.encode()) for known in tokens):
        raise AuthenticationError("Invalid API key")

    reviewer_id = reviewer_id_from_token(token)
    request.state.reviewer_id = reviewer_id
    bind_contextvars(reviewer_id=reviewer_id)
    return reviewer_id


AppSettings = Annotated[Settings, Depends(get_settings_from_app)]
FraudService = Annotated[FraudDetectionService, Depends(get_fraud_service)]
ReviewerId = Annotated[str, Depends(require_reviewer)]
