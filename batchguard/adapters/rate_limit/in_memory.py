"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the whole window map.
- A window starts at the first call for a key and lasts ``window_seconds``.
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from batchguard.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class _WindowState:
    count: int
    reset_at: float


class InMemoryWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping one fixed window per key.

    Windows expire once ``now > reset_at``. Expired windows are treated as
    absent by every read and replaced lazily on the next ``consume``; the
    ``cleanup`` sweep only bounds memory.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of admitted calls per window.
            window_seconds: Window length in seconds.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: dict[str, _WindowState] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _active_window(self, key: str, now: float) -> _WindowState | None:
        """Return the key's window unless it is missing or expired."""
        state = self._windows.get(key)
        if state is None or now > state.reset_at:
            return None
        return state

    def consume(self, key: str) -> RateLimitResult:
        """Admit or deny one call for ``key``.

        Args:
            key: Opaque caller identity (e.g. ``ip:10.0.0.1``). Any string,
                the empty one included, is its own identity.

        Returns:
            RateLimitResult with the decision and window metadata.
        """
        now = self._clock()

        with self._lock:
            state = self._active_window(key, now)

            if state is None:
                state = _WindowState(count=1, reset_at=now + self._window_seconds)
                self._windows[key] = state
                return self._allowed(state)

            if state.count < self._limit:
                state.count += 1
                return self._allowed(state)

            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=0,
                reset_at=state.reset_at,
                retry_after_seconds=max(1, int(math.ceil(state.reset_at - now))),
            )

    def _allowed(self, state: _WindowState) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=max(0, self._limit - state.count),
            reset_at=state.reset_at,
            retry_after_seconds=None,
        )

    def remaining(self, key: str) -> int:
        with self._lock:
            state = self._active_window(key, self._clock())
            if state is None:
                return self._limit
            return max(0, self._limit - state.count)

    def reset_at(self, key: str) -> float | None:
        with self._lock:
            state = self._active_window(key, self._clock())
            return None if state is None else state.reset_at

    def cleanup(self) -> None:
        """Drop every window whose ``reset_at`` has passed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, state in self._windows.items() if now > state.reset_at]
            for key in expired:
                del self._windows[key]
            tracked = len(self._windows)

        logger.debug(
            "rate_limit.cleanup",
            extra={"removed": len(expired), "tracked": tracked},
        )


async def run_periodic_cleanup(limiter: AbstractRateLimiter, interval_seconds: float) -> None:
    """Sweep expired windows every ``interval_seconds`` until cancelled."""

    while True:
        await asyncio.sleep(interval_seconds)
        limiter.cleanup()
