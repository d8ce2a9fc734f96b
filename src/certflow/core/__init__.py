"""Core services and utilities for certflow."""

from .exceptions import (
    AlertNotFoundError,
    AuthenticationError,
    AuthorizationError,
    CredentialNotFoundError,
    InvalidStatusError,
    InvalidTransitionError,
    NotFoundError,
    RateLimitExceededError,
    TransientStoreError,
)
from .logging import (
    LogContext,
    bind_contextvars,
    clear_contextvars,
    get_logger,
    log_exception,
    log_request_end,
    setup_logging,
)

__all__ = [
    # Exceptions
    "AlertNotFoundError",
    "AuthenticationError",
    "AuthorizationError",
    "CredentialNotFoundError",
    "InvalidStatusError",
    "InvalidTransitionError",
    "NotFoundError",
    "RateLimitExceededError",
    "TransientStoreError",
    # Logging
    "LogContext",
    "bind_contextvars",
    "clear_contextvars",
    "get_logger",
    "log_exception",
    "log_request_end",
    "setup_logging",
]
