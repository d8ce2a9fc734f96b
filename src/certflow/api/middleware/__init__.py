"""API middleware components."""

from .errors import ErrorHandlingMiddleware
from .logging import RequestLoggingMiddleware, get_client_ip
from .rate_limit import InMemoryRateLimitStore, RateLimiterMiddleware, RateLimitResult

__all__ = [
    "ErrorHandlingMiddleware",
    "InMemoryRateLimitStore",
    "RateLimitResult",
    "RateLimiterMiddleware",
    "RequestLoggingMiddleware",
    "get_client_ip",
]
