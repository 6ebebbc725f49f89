"""Batching/caching loaders used to avoid N+1 lookups."""

from batchguard.loaders.batch_loader import BatchLoader, normalize_key
from batchguard.loaders.factory import RequestLoaders, create_loaders
from batchguard.loaders.scheduler import BatchScheduler, EventLoopScheduler, ManualScheduler

__all__ = [
    "BatchLoader",
    "BatchScheduler",
    "EventLoopScheduler",
    "ManualScheduler",
    "RequestLoaders",
    "create_loaders",
    "normalize_key",
]
