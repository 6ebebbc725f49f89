"""Unit tests for the in-memory window rate limiter."""

import asyncio
import threading
from unittest.mock import Mock

import pytest

from batchguard.adapters.rate_limit.in_memory import (
    InMemoryWindowRateLimiter,
    run_periodic_cleanup,
)


def test_allows_up_to_limit_then_denies() -> None:
    limiter = InMemoryWindowRateLimiter(limit=3, window_seconds=60)

    assert limiter.check("ip1") is True
    assert limiter.check("ip1") is True
    assert limiter.check("ip1") is True
    assert limiter.check("ip1") is False

    assert limiter.check("ip2") is True


def test_remaining_counts_down_from_limit() -> None:
    limiter = InMemoryWindowRateLimiter(limit=5, window_seconds=60)

    assert limiter.remaining("fresh") == 5
    limiter.check("fresh")
    assert limiter.remaining("fresh") == 4


def test_remaining_does_not_consume() -> None:
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60)

    for _ in range(3):
        assert limiter.remaining("k") == 1

    assert limiter.check("k") is True
    assert len(limiter) == 1


def test_denied_calls_are_not_counted(clock) -> None:
    limiter = InMemoryWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    limiter.check("k")
    limiter.check("k")
    for _ in range(5):
        assert limiter.check("k") is False

    assert limiter.remaining("k") == 0

    clock.advance(61)
    assert limiter.check("k") is True
    assert limiter.remaining("k") == 1


def test_blocked_result_carries_retry_after(clock) -> None:
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.consume("k").allowed is True
    clock.advance(20.5)

    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.reset_at == 1060.0
    assert blocked.retry_after_seconds == 40


def test_window_expires_after_duration(clock) -> None:
    limiter = InMemoryWindowRateLimiter(limit=3, window_seconds=10, clock=clock)

    for _ in range(3):
        limiter.check("k")
    assert limiter.check("k") is False

    # Still inside the window exactly at reset_at
    clock.advance(10)
    assert limiter.check("k") is False

    clock.advance(0.001)
    assert limiter.check("k") is True
    assert limiter.remaining("k") == 2
    assert limiter.reset_at("k") == pytest.approx(1020.001)


def test_window_starts_at_first_call(clock) -> None:
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    clock.advance(59)
    limiter.check("k")

    assert limiter.reset_at("k") == 1119.0
    assert limiter.reset_at("unknown") is None


def test_expired_window_reads_as_absent(clock) -> None:
    limiter = InMemoryWindowRateLimiter(limit=4, window_seconds=5, clock=clock)

    limiter.check("k")
    limiter.check("k")
    clock.advance(6)

    assert limiter.remaining("k") == 4
    assert limiter.reset_at("k") is None


def test_cleanup_removes_only_expired_windows(clock) -> None:
    limiter = InMemoryWindowRateLimiter(limit=5, window_seconds=10, clock=clock)

    limiter.check("old")
    clock.advance(5)
    limiter.check("active")
    limiter.check("active")
    clock.advance(6)

    limiter.cleanup()

    assert len(limiter) == 1
    assert limiter.remaining("active") == 3
    assert limiter.remaining("old") == 5


def test_isolated_by_key() -> None:
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60)

    assert limiter.check("ip-1") is True
    assert limiter.check("ip-2") is True
    assert limiter.check("ip-1") is False
    assert limiter.check("ip-2") is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
        {"limit": 1, "window_seconds": -1},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryWindowRateLimiter(**kwargs)


def test_empty_identity_gets_a_decision() -> None:
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60)

    assert limiter.check("") is True
    assert limiter.check("") is False
    assert limiter.remaining("") == 0
    assert limiter.check("other") is True


def test_denied_at_reset_boundary_never_says_retry_now(clock) -> None:
    limiter = InMemoryWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    limiter.consume("k")
    clock.advance(60)

    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.retry_after_seconds == 1


@pytest.mark.asyncio
async def test_periodic_cleanup_sweeps_until_cancelled() -> None:
    limiter = Mock()
    task = asyncio.create_task(run_periodic_cleanup(limiter, 0.001))

    while limiter.cleanup.call_count < 2:
        await asyncio.sleep(0.001)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


def test_concurrent_checks_never_exceed_limit() -> None:
    limiter = InMemoryWindowRateLimiter(limit=25, window_seconds=60)
    allowed: list[bool] = []
    lock = threading.Lock()

    def _worker() -> None:
        for _ in range(10):
            result = limiter.check("shared")
            with lock:
                allowed.append(result)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert allowed.count(True) == 25
    assert limiter.remaining("shared") == 0
