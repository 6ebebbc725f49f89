"""Shared FastAPI dependencies for route handlers."""

from __future__ import annotations

from fastapi import Request

from batchguard.loaders.factory import RequestLoaders, create_loaders
from batchguard.services.directory_service import DirectoryService


async def get_directory_service(request: Request) -> DirectoryService:
    return request.app.state.directory_service


async def get_loaders(request: Request) -> RequestLoaders:
    """Fresh loaders for the current request.

    FastAPI caches dependency results per request, so every handler and
    sub-dependency of one request shares the same loaders.
    """

    return create_loaders(request.app.state.directory_service)
