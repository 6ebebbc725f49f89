"""Rate limiter interfaces.

The HTTP layer depends on this abstraction so the in-memory limiter can be
replaced by a shared store later without touching the routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single admission decision.

    Attributes:
        allowed: Whether the call is admitted.
        limit: Max calls per window.
        remaining: Calls left in the active window after this decision.
        reset_at: UNIX epoch seconds at which the active window expires.
        retry_after_seconds: Suggested wait in whole seconds when denied.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for keyed rate limiters.

    A denied call never counts against the key's budget.
    """

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Admit or deny one call for ``key`` and describe the window state."""
        raise NotImplementedError

    def check(self, key: str) -> bool:
        """Return True when a call for ``key`` is admitted (and counted)."""
        return self.consume(key).allowed

    @abstractmethod
    def remaining(self, key: str) -> int:
        """Calls still available to ``key`` in its active window. Never mutates."""
        raise NotImplementedError

    @abstractmethod
    def reset_at(self, key: str) -> float | None:
        """Expiry of ``key``'s active window, or None when it has none."""
        raise NotImplementedError

    @abstractmethod
    def cleanup(self) -> None:
        """Forget every expired window."""
        raise NotImplementedError
