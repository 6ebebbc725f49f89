from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query

from batchguard.api.dependencies import get_directory_service, get_loaders
from batchguard.core.config import settings
from batchguard.core.errors import NotFoundAppError
from batchguard.core.rate_limit import enforce_rate_limit
from batchguard.loaders.factory import RequestLoaders
from batchguard.schemas.directory import Post, PostListResponse, PostView
from batchguard.services.directory_service import DirectoryService

router = APIRouter(tags=["Posts"], dependencies=[Depends(enforce_rate_limit)])


async def build_post_view(post: Post, loaders: RequestLoaders) -> PostView:
    """Attach author and comments to a post through the request loaders."""
    author, comments = await asyncio.gather(
        loaders.users.load(post.author_id),
        loaders.comments_by_post.load(post.id),
    )
    return PostView(**post.model_dump(), author=author, comments=comments)


@router.get("/posts", response_model=PostListResponse)
async def list_posts(
    limit: int | None = Query(None, ge=1, le=100, description="Page size"),
    tag: str | None = Query(None, description="Only posts carrying this tag"),
    loaders: RequestLoaders = Depends(get_loaders),
    service: DirectoryService = Depends(get_directory_service),
) -> PostListResponse:
    """List published posts, newest first.

    Authors and comments for the whole page are fetched with one batch each,
    however many posts the page holds.
    """
    posts, has_more = await service.list_posts(
        limit=limit or settings.app.posts_page_limit,
        tag=tag,
    )
    for post in posts:
        loaders.posts.prime(post.id, post)

    views = await asyncio.gather(*(build_post_view(post, loaders) for post in posts))
    return PostListResponse(posts=list(views), has_more=has_more)


@router.get("/posts/{post_id}", response_model=PostView)
async def get_post(
    post_id: str,
    loaders: RequestLoaders = Depends(get_loaders),
) -> PostView:
    post = await loaders.posts.load(post_id)
    if post is None:
        raise NotFoundAppError(
            code="post_not_found",
            message="Post not found",
            details={"resource": "post", "resource_id": post_id},
        )
    return await build_post_view(post, loaders)
