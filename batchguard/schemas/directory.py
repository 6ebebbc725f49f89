"""Pydantic schemas for directory (users, posts, comments) responses."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class User(BaseModel):
    """Public view of a user account."""

    id: str
    email: str
    name: str
    role: UserRole = UserRole.USER
    bio: str | None = None
    created_at: datetime
    updated_at: datetime


class Comment(BaseModel):
    id: str
    content: str
    author_id: str
    post_id: str
    created_at: datetime


class Post(BaseModel):
    id: str
    title: str
    content: str
    published: bool = True
    author_id: str
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class PostView(Post):
    """Post with its author and comments resolved through request loaders."""

    author: User | None = Field(
        default=None,
        description="Author of the post; null when the account no longer exists.",
    )
    comments: List[Comment] = Field(default_factory=list)


class PostListResponse(BaseModel):
    posts: List[PostView]
    has_more: bool = Field(
        ..., description="Whether more posts exist after the returned page."
    )
