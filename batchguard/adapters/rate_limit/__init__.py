"""Rate limiting adapters.

This package keeps the limiter behind a small interface so the service can
start with an in-memory limiter and move to a shared store later without
changing the API layer.
"""

from batchguard.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from batchguard.adapters.rate_limit.in_memory import (
    InMemoryWindowRateLimiter,
    run_periodic_cleanup,
)

__all__ = [
    "AbstractRateLimiter",
    "InMemoryWindowRateLimiter",
    "RateLimitResult",
    "run_periodic_cleanup",
]
