"""Request logging middleware."""

import time
from collections.abc import Sequence
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Callable

from fastapi import Request, Response
from pydantic import IPvAnyNetwork
from starlette.middleware.base import BaseHTTPMiddleware
from uuid_utils.compat import uuid7

from certflow.core.logging import (
    bind_contextvars,
    clear_contextvars,
    get_logger,
    log_request_end,
)
from certflow.db.models import UNKNOWN_SOURCE

logger = get_logger("certflow.api.requests")

# Paths not worth a log line per request
SKIP_LOG_PATHS = {"/health"}

# Longest textual IPv6 form, IPv4-mapped tail included
MAX_ADDRESS_LENGTH = 45


def _parse_address(value: str | None) -> IPv4Address | IPv6Address | None:
    value = (value or "").strip()
    if not value or len(value) > MAX_ADDRESS_LENGTH:
        return None
    try:
        return ip_address(value)
    except ValueError:
        return None


def _is_trusted(address: IPv4Address | IPv6Address, trusted: Sequence[IPvAnyNetwork]) -> bool:
    return any(address in network for network in trusted)


def get_client_ip(
    request: Request, trusted_proxies: Sequence[IPvAnyNetwork] = ()
) -> str | None:
    """Get the address of the client that sent a request.

    Forwarding headers are honored only when the direct peer is one of
    ``trusted_proxies``. X-Forwarded-For is then read from the nearest hop
    outward and the first address outside the trusted networks is the
    client; X-Real-IP is used when X-Forwarded-For is absent. Values that
    are not IP addresses yield ``unknown``.

    Returns:
        The client address, or None when the connection has no peer
    """
    if request.client is None:
        return None
    peer = _parse_address(request.client.host)
    if peer is None:
        return UNKNOWN_SOURCE
    if not _is_trusted(peer, trusted_proxies):
        return str(peer)

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        hops = forwarded_for.split(",")
    else:
        hops = [request.headers.get("X-Real-IP") or str(peer)]

    client = peer
    for hop in reversed(hops):
        client = _parse_address(hop)
        if client is None:
            return UNKNOWN_SOURCE
        if not _is_trusted(client, trusted_proxies):
            break
    return str(client)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that assigns a request ID and logs every HTTP request.

    The request ID is stored on ``request.state``, bound to the structlog
    context for every log line emitted while handling the request, and
    echoed in the ``X-Request-ID`` response header.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        """Process request and log request/response."""
        start_time = time.perf_counter()

        request_id = str(uuid7())
        request.state.request_id = request_id
        clear_contextvars()
        bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
        finally:
            clear_contextvars()

        response.headers["X-Request-ID"] = request_id

        if request.url.path not in SKIP_LOG_PATHS:
            log_request_end(
                logger,
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - start_time) * 1000,
                request_id=request_id,
                client_ip=get_client_ip(request, request.app.state.settings.TRUSTED_PROXIES),
                user_agent=request.headers.get("User-Agent"),
            )

        return response
