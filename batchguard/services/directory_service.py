"""Directory service exposing bulk lookups to request loaders.

Every ``*_by_ids`` method returns exactly one entry per requested id, in the
requested order, which is the contract batch loaders rely on.
"""

from __future__ import annotations

import logging

from batchguard.adapters.storage.in_memory import InMemoryDirectory
from batchguard.schemas.directory import Comment, Post, User

logger = logging.getLogger(__name__)


class DirectoryService:
    """Read operations over the directory store."""

    def __init__(self, store: InMemoryDirectory) -> None:
        self._store = store

    async def find_users_by_ids(self, ids: list[str]) -> list[User | None]:
        logger.debug("directory.users_by_ids", extra={"count": len(ids)})
        return self._store.find_users_by_ids(ids)

    async def find_posts_by_ids(self, ids: list[str]) -> list[Post | None]:
        logger.debug("directory.posts_by_ids", extra={"count": len(ids)})
        return self._store.find_posts_by_ids(ids)

    async def comments_by_post_ids(self, post_ids: list[str]) -> list[list[Comment]]:
        """Comments for each post id; posts without comments get an empty list."""
        logger.debug("directory.comments_by_post_ids", extra={"count": len(post_ids)})
        grouped = self._store.comments_by_post_ids(post_ids)
        return [grouped.get(post_id, []) for post_id in post_ids]

    async def list_posts(self, *, limit: int, tag: str | None = None) -> tuple[list[Post], bool]:
        return self._store.list_posts(limit=limit, tag=tag)
