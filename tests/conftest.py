"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that might build settings.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "100")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from batchguard.adapters.rate_limit.in_memory import InMemoryWindowRateLimiter  # noqa: E402
from batchguard.adapters.storage.in_memory import InMemoryDirectory  # noqa: E402
from batchguard.core.app_factory import create_app  # noqa: E402


class FakeClock:
    """Deterministic clock for window expiry tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryDirectory:
    return InMemoryDirectory.with_sample_data()


@pytest.fixture
def limiter(clock: FakeClock) -> InMemoryWindowRateLimiter:
    return InMemoryWindowRateLimiter(limit=100, window_seconds=60, clock=clock)


@pytest.fixture
def client(limiter: InMemoryWindowRateLimiter, store: InMemoryDirectory) -> TestClient:
    """Test client over a fresh app with its own limiter and store."""
    return TestClient(create_app(rate_limiter=limiter, store=store))


@pytest.fixture
def spy_store(store: InMemoryDirectory) -> InMemoryDirectory:
    """Wrap the bulk lookups of ``store`` in mocks that record each batch."""
    store.find_users_by_ids = Mock(wraps=store.find_users_by_ids)
    store.find_posts_by_ids = Mock(wraps=store.find_posts_by_ids)
    store.comments_by_post_ids = Mock(wraps=store.comments_by_post_ids)
    return store
