"""Application factory for the FastAPI app.

Owns the process-lifetime collaborators: the rate limiter and the directory
store are created here, once per app, and handed to request handlers through
``app.state``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from batchguard.adapters.rate_limit.base import AbstractRateLimiter
from batchguard.adapters.rate_limit.in_memory import (
    InMemoryWindowRateLimiter,
    run_periodic_cleanup,
)
from batchguard.adapters.storage.in_memory import InMemoryDirectory
from batchguard.api.routes import health_router, posts_router, users_router
from batchguard.core.config import AppSettings, settings
from batchguard.core.exception_handlers import setup_exception_handlers
from batchguard.core.logging import configure_logging
from batchguard.core.middleware import request_id_middleware
from batchguard.services.directory_service import DirectoryService

logger = logging.getLogger(__name__)


def build_rate_limiter(app_settings: AppSettings) -> InMemoryWindowRateLimiter:
    return InMemoryWindowRateLimiter(
        limit=app_settings.rate_limit_requests,
        window_seconds=app_settings.rate_limit_window_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the periodic limiter sweep for as long as the app is serving."""
    limiter: AbstractRateLimiter = app.state.rate_limiter
    interval = settings.app.rate_limit_cleanup_interval_seconds
    cleanup_task = asyncio.create_task(run_periodic_cleanup(limiter, interval))
    logger.info("rate_limit.cleanup_started", extra={"interval_s": interval})
    try:
        yield
    finally:
        cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await cleanup_task


def create_app(
    *,
    rate_limiter: AbstractRateLimiter | None = None,
    store: InMemoryDirectory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Limiter to use instead of one built from settings.
        store: Directory store to use instead of the seeded sample store.

    Returns:
        Configured app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="batchguard",
        description=(
            "Read API over users, posts and comments. Related records are "
            "resolved through per-request batching loaders and every /v1 "
            "route is rate limited per client address."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    if rate_limiter is None:
        rate_limiter = build_rate_limiter(settings.app)
    if store is None:
        store = InMemoryDirectory.with_sample_data()

    app.state.rate_limiter = rate_limiter
    app.state.directory_service = DirectoryService(store)

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(users_router, prefix="/v1")
    app.include_router(posts_router, prefix="/v1")
    app.include_router(health_router)

    return app
