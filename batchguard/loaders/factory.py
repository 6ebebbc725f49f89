"""Request-scoped loader container and factory.

Each request gets its own loaders so batching boundaries and caches never
leak between requests.
"""

from __future__ import annotations

from dataclasses import dataclass

from batchguard.loaders.batch_loader import BatchLoader
from batchguard.loaders.scheduler import BatchScheduler
from batchguard.schemas.directory import Comment, Post, User
from batchguard.services.directory_service import DirectoryService


@dataclass
class RequestLoaders:
    """Loaders available to route handlers for one request.

    Usage in a handler:
        author = await loaders.users.load(post.author_id)
    """

    users: BatchLoader[str, User | None]
    posts: BatchLoader[str, Post | None]
    comments_by_post: BatchLoader[str, list[Comment]]


def create_loaders(
    service: DirectoryService,
    scheduler: BatchScheduler | None = None,
) -> RequestLoaders:
    """Build fresh loaders backed by ``service``.

    Args:
        service: Directory service performing the bulk lookups.
        scheduler: Optional shared scheduler; each loader defaults to the
            event-loop scheduler.
    """
    return RequestLoaders(
        users=BatchLoader(service.find_users_by_ids, scheduler=scheduler, name="users"),
        posts=BatchLoader(service.find_posts_by_ids, scheduler=scheduler, name="posts"),
        comments_by_post=BatchLoader(
            service.comments_by_post_ids, scheduler=scheduler, name="comments_by_post"
        ),
    )
