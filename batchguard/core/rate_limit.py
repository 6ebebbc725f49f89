"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- The limiter is created once per app (see ``create_app``) and reached through
  ``request.app.state``; nothing here holds module-level state.
- Swap-friendly: routes depend on ``AbstractRateLimiter`` only.
- Safe defaults: enabled, keyed by client address.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import HTTPException, Request, status

from batchguard.adapters.rate_limit.base import AbstractRateLimiter
from batchguard.core.config import settings

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running app."""

    return request.app.state.rate_limiter


def client_identity(request: Request) -> str:
    """Build the limiter key for the current request.

    The first ``X-Forwarded-For`` hop wins when forwarding headers are
    trusted; otherwise the socket peer address is used.

    Returns:
        str: Namespaced limiter key, e.g. ``ip:203.0.113.7``.
    """

    if settings.app.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def hash_identity(key: str) -> str:
    """Hash a client identity for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing rate limits.

    Counts one call against the requester's window. Denied calls are not
    counted and surface as HTTP 429.

    Raises:
        HTTPException: 429 Too Many Requests when the window is exhausted.
    """

    if not settings.app.rate_limit_enabled:
        return

    limiter = get_rate_limiter(request)
    key = client_identity(request)

    result = limiter.consume(key)
    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": hash_identity(key),
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": hash_identity(key),
            "limit": result.limit,
            "window_s": settings.app.rate_limit_window_seconds,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(int(result.reset_at))

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Please try again later.",
        headers=headers or None,
    )
