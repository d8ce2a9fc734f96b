"""Rate limiting for public certificate verification.

Implements sliding window rate limiting with:
- Per-client tracking by source address
- Limits applied to ``GET /v1/certificates/{credential_id}`` only
- In-memory counters, dropped once a client has been idle
- Rate limit headers on allowed responses
"""

import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from fastapi import Request, Response
from pydantic import IPvAnyNetwork
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from certflow.config.settings import RateLimitConfig
from certflow.core.exceptions import RateLimitExceededError
from certflow.core.logging import get_logger
from certflow.db.models import UNKNOWN_SOURCE

from .logging import get_client_ip

logger = get_logger(__name__)

# Public verification; search and history are reviewer routes
LIMITED_PATH = re.compile(r"^/v1/certificates/(?!search$)[^/]+$")


@dataclass
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed
        limit: Requests allowed per window
        remaining: Requests left in the window
        reset_time: Unix timestamp when the current window ends
        retry_after: Seconds until the client can retry (if not allowed)
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after: int = 0


@dataclass
class SlidingWindowCounter:
    """Request counts of the current and previous fixed window.

    The previous window is weighted by how much of it still overlaps the
    trailing window, which smooths the edge between two windows.
    """

    window_start: float
    window_size: int
    current_count: int = 0
    previous_count: int = 0

    def roll(self, now: float) -> None:
        """Advance to the window containing ``now``."""
        elapsed = now - self.window_start
        if elapsed < self.window_size:
            return
        if elapsed < 2 * self.window_size:
            self.previous_count = self.current_count
            self.window_start += self.window_size
        else:
            self.previous_count = 0
            self.window_start = now
        self.current_count = 0

    def weighted_count(self, now: float) -> float:
        weight = 1.0 - (now - self.window_start) / self.window_size
        return self.current_count + self.previous_count * weight


class InMemoryRateLimitStore:
    """Sliding window counters keyed by client address.

    Suitable for a single application instance; each instance enforces
    its own limit.

    Example:
        store = InMemoryRateLimitStore()
        result = store.check_and_increment("203.0.113.7", limit=10, window_size=60)
        if not result.allowed:
            raise RateLimitExceededError(result.limit, result.retry_after)
    """

    def __init__(
        self,
        cleanup_interval: int = 300,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the store.

        Args:
            cleanup_interval: Seconds between sweeps of idle counters
            clock: Source of the current Unix time
        """
        self._counters: dict[str, SlidingWindowCounter] = {}
        self._cleanup_interval = cleanup_interval
        self._clock = clock
        self._last_cleanup = clock()

    def __len__(self) -> int:
        return len(self._counters)

    def check_and_increment(self, key: str, limit: int, window_size: int) -> RateLimitResult:
        """Count a request for ``key`` unless it would exceed the limit.

        Rejected requests are not counted.
        """
        now = self._clock()
        if now - self._last_cleanup > self._cleanup_interval:
            self._cleanup(now, window_size)

        counter = self._counters.get(key)
        if counter is None:
            counter = self._counters[key] = SlidingWindowCounter(now, window_size)
        counter.roll(now)

        weighted = counter.weighted_count(now)
        reset_time = counter.window_start + window_size
        if weighted >= limit:
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_time=reset_time,
                retry_after=max(1, int(reset_time - now)),
            )

        counter.current_count += 1
        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=max(0, int(limit - weighted - 1)),
            reset_time=reset_time,
        )

    def _cleanup(self, now: float, window_size: int) -> None:
        self._last_cleanup = now
        # Older than two windows, the counter no longer weighs anything
        expired = [
            key
            for key, counter in self._counters.items()
            if now - counter.window_start > window_size * 2
        ]
        for key in expired:
            del self._counters[key]


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """Middleware that limits public verification requests per client.

    Requests over the limit raise RateLimitExceededError, which the error
    handling middleware turns into a 429 with a Retry-After header, so it
    must be installed inside ErrorHandlingMiddleware.

    Example:
        app.add_middleware(
            RateLimiterMiddleware,
            config=settings.rate_limit,
            trusted_proxies=settings.TRUSTED_PROXIES,
        )
    """

    def __init__(
        self,
        app: ASGIApp,
        config: RateLimitConfig | None = None,
        trusted_proxies: Sequence[IPvAnyNetwork] = (),
        store: InMemoryRateLimitStore | None = None,
    ):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.trusted_proxies = trusted_proxies
        self.store = store or InMemoryRateLimitStore(self.config.cleanup_interval_seconds)

    def is_limited(self, request: Request) -> bool:
        """Check if a request falls under the verification limit."""
        return request.method == "GET" and LIMITED_PATH.match(request.url.path) is not None

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Enforce the limit, then add rate limit headers to the response."""
        if not self.config.enabled or not self.is_limited(request):
            return await call_next(request)

        client = get_client_ip(request, self.trusted_proxies) or UNKNOWN_SOURCE
        result = self.store.check_and_increment(
            client, self.config.requests_per_window, self.config.window_seconds
        )
        if not result.allowed:
            logger.warning(
                "verification_rate_limited",
                client_ip=client,
                http_path=request.url.path,
                retry_after=result.retry_after,
            )
            raise RateLimitExceededError(result.limit, result.retry_after)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Reset"] = str(int(result.reset_time))
        return response
