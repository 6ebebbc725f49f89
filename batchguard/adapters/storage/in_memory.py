"""In-memory directory store.

Stands in for a database in this service: one instance per app, seeded with
sample data, lost on restart.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from batchguard.schemas.directory import Comment, Post, User, UserRole


class InMemoryDirectory:
    """Users, posts and comments kept in plain dicts."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._posts: dict[str, Post] = {}
        self._comments: dict[str, Comment] = {}

    @classmethod
    def with_sample_data(cls) -> "InMemoryDirectory":
        """Build a store holding a few users, posts and one comment."""
        store = cls()
        now = datetime.now(timezone.utc)

        alice = User(
            id="user_1", email="alice@example.com", name="Alice Johnson",
            bio="Full-stack developer", created_at=now, updated_at=now,
        )
        bob = User(
            id="user_2", email="bob@example.com", name="Bob Smith",
            bio="DevOps engineer", created_at=now, updated_at=now,
        )
        admin = User(
            id="user_3", email="admin@example.com", name="Admin",
            role=UserRole.ADMIN, created_at=now, updated_at=now,
        )
        for user in (alice, bob, admin):
            store.add_user(user)

        store.add_post(
            Post(
                id="post_1",
                title="Getting Started with GraphQL",
                content="GraphQL is a query language for APIs...",
                author_id=alice.id,
                tags=["graphql", "tutorial"],
                created_at=now,
                updated_at=now,
            )
        )
        store.add_post(
            Post(
                id="post_2",
                title="Advanced TypeScript Patterns",
                content="TypeScript offers powerful type-level programming...",
                author_id=bob.id,
                tags=["typescript", "advanced"],
                created_at=now,
                updated_at=now,
            )
        )
        store.add_comment(
            Comment(
                id="comment_1",
                content="Great article!",
                author_id=bob.id,
                post_id="post_1",
                created_at=now,
            )
        )
        return store

    def add_user(self, user: User) -> None:
        with self._lock:
            self._users[user.id] = user

    def add_post(self, post: Post) -> None:
        with self._lock:
            self._posts[post.id] = post

    def add_comment(self, comment: Comment) -> None:
        with self._lock:
            self._comments[comment.id] = comment

    def find_users_by_ids(self, ids: list[str]) -> list[User | None]:
        with self._lock:
            return [self._users.get(user_id) for user_id in ids]

    def find_posts_by_ids(self, ids: list[str]) -> list[Post | None]:
        with self._lock:
            return [self._posts.get(post_id) for post_id in ids]

    def list_posts(
        self,
        *,
        limit: int,
        tag: str | None = None,
        published_only: bool = True,
    ) -> tuple[list[Post], bool]:
        """Return one page of posts, newest first, and whether more exist."""
        with self._lock:
            posts = list(self._posts.values())

        if published_only:
            posts = [p for p in posts if p.published]
        if tag:
            posts = [p for p in posts if tag in p.tags]
        posts.sort(key=lambda p: p.created_at, reverse=True)

        return posts[:limit], len(posts) > limit

    def comments_by_post_ids(self, post_ids: list[str]) -> dict[str, list[Comment]]:
        grouped: dict[str, list[Comment]] = {post_id: [] for post_id in post_ids}
        with self._lock:
            for comment in self._comments.values():
                if comment.post_id in grouped:
                    grouped[comment.post_id].append(comment)
        return grouped
