from __future__ import annotations

from batchguard.api.routes.health import router as health_router
from batchguard.api.routes.posts import router as posts_router
from batchguard.api.routes.users import router as users_router

__all__ = ["health_router", "posts_router", "users_router"]
