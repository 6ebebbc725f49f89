"""Deferred batching/caching loader.

Coalesces the point lookups issued during one unit of work into a single call
to a bulk fetch function, and memoizes the result per key for the loader's
lifetime.

Thread Safety:
    Loaders belong to one event loop and one request; they are not
    thread-safe and must not be shared across requests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Hashable, Mapping, Set
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

from batchguard.core.errors import BatchLoadError
from batchguard.loaders.scheduler import BatchScheduler, EventLoopScheduler

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

BatchFn = Callable[[list[K]], Awaitable[Sequence[V | BaseException]]]


def normalize_key(key: Any) -> Hashable:
    """Default cache identity for a key.

    Hashable keys are used as-is. Mappings, lists, tuples and sets are turned
    into hashable tuples recursively, so ``{"a": 1, "b": 2}`` and
    ``{"b": 2, "a": 1}`` share one cache entry.
    """
    if isinstance(key, Mapping):
        items = ((normalize_key(k), normalize_key(v)) for k, v in key.items())
        return ("__mapping__", tuple(sorted(items, key=repr)))
    if isinstance(key, (list, tuple)):
        return (type(key).__name__, tuple(normalize_key(v) for v in key))
    if isinstance(key, Set):
        return ("__set__", tuple(sorted((normalize_key(v) for v in key), key=repr)))
    if isinstance(key, Hashable):
        return key
    raise TypeError(
        f"cannot derive a cache key from {type(key).__name__}; pass key_fn"
    )


@dataclass
class _PendingRequest(Generic[K, V]):
    """A key waiting for the next dispatch."""

    key: K
    cache_key: Hashable
    futures: list[asyncio.Future[V]] = field(default_factory=list)


class BatchLoader(Generic[K, V]):
    """Batch and cache lookups of ``V`` by ``K``.

    Every ``load`` issued before the scheduled dispatch runs ends up in a
    single call ``batch_fn(keys)``. ``batch_fn`` must return one entry per key
    in the same order; an exception instance at a position fails only that
    key, ``None`` is an ordinary value.

    Settled handles stay cached, failures included: loading a key whose
    fetch failed returns the same failed handle until ``clear`` is called.
    A handle cancelled by a caller is dropped instead, so the next ``load``
    fetches the key again.

    Attributes:
        name: Label used in log records.
    """

    def __init__(
        self,
        batch_fn: BatchFn[K, V],
        *,
        key_fn: Callable[[K], Hashable] | None = None,
        scheduler: BatchScheduler | None = None,
        name: str | None = None,
    ) -> None:
        self._batch_fn = batch_fn
        self._key_fn = key_fn or normalize_key
        self._scheduler = scheduler or EventLoopScheduler()
        self.name = name or getattr(batch_fn, "__name__", "loader")

        self._cache: dict[Hashable, asyncio.Future[V]] = {}
        self._queue: dict[Hashable, _PendingRequest[K, V]] = {}
        self._scheduled = False

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"BatchLoader(name={self.name!r}, cached={len(self._cache)}, "
            f"queued={len(self._queue)})"
        )

    def load(self, key: K) -> asyncio.Future[V]:
        """Return a handle resolving to the value for ``key``.

        Never blocks. Must be called with a running event loop.
        """
        cache_key = self._key_fn(key)
        cached = self._cache.get(cache_key)
        if cached is not None and not cached.cancelled():
            return cached

        future: asyncio.Future[V] = asyncio.get_running_loop().create_future()

        # The key may still be queued if it was cleared before dispatch
        request = self._queue.get(cache_key)
        if request is None:
            request = _PendingRequest(key=key, cache_key=cache_key)
            self._queue[cache_key] = request
        request.futures.append(future)

        self._cache[cache_key] = future
        self._schedule_dispatch()
        return future

    async def load_many(self, keys: Sequence[K]) -> list[V | BaseException]:
        """Load several keys at once.

        Results follow the order of ``keys``; a failed key yields its
        exception in place instead of failing the whole call.
        """
        futures = [self.load(key) for key in keys]
        return list(await asyncio.gather(*futures, return_exceptions=True))

    def prime(self, key: K, value: V) -> "BatchLoader[K, V]":
        """Seed the cache with ``value`` unless ``key`` already has an entry."""
        cache_key = self._key_fn(key)
        if cache_key not in self._cache:
            future: asyncio.Future[V] = asyncio.get_running_loop().create_future()
            future.set_result(value)
            self._cache[cache_key] = future
        return self

    def clear(self, key: K) -> "BatchLoader[K, V]":
        self._cache.pop(self._key_fn(key), None)
        return self

    def clear_all(self) -> "BatchLoader[K, V]":
        self._cache.clear()
        return self

    def _schedule_dispatch(self) -> None:
        if self._scheduled:
            return
        self._scheduled = True
        self._scheduler.schedule(self._dispatch)

    async def _dispatch(self) -> None:
        self._scheduled = False
        batch = list(self._queue.values())
        self._queue = {}
        if not batch:
            return

        keys = [request.key for request in batch]
        logger.debug(
            "loader.dispatch",
            extra={"loader": self.name, "batch_size": len(keys)},
        )

        try:
            results = list(await self._batch_fn(keys))
        except asyncio.CancelledError:
            for request in batch:
                for future in request.futures:
                    future.cancel()
                self._forget_cancelled(request)
            raise
        except Exception as exc:
            logger.warning(
                "loader.batch_failed",
                extra={
                    "loader": self.name,
                    "batch_size": len(keys),
                    "error_type": type(exc).__name__,
                },
            )
            self._fail_all(batch, exc)
            return

        if len(results) != len(keys):
            logger.error(
                "loader.batch_size_mismatch",
                extra={
                    "loader": self.name,
                    "expected": len(keys),
                    "actual": len(results),
                },
            )
            self._fail_all(
                batch,
                BatchLoadError(
                    code="batch_size_mismatch",
                    message=(
                        f"Batch function for {self.name!r} returned {len(results)} "
                        f"results for {len(keys)} keys"
                    ),
                    details={
                        "loader": self.name,
                        "expected": len(keys),
                        "actual": len(results),
                    },
                ),
            )
            return

        for request, result in zip(batch, results):
            self._forget_cancelled(request)
            for future in request.futures:
                if future.done():
                    continue
                if isinstance(result, BaseException):
                    future.set_exception(result)
                else:
                    future.set_result(result)

    def _fail_all(self, batch: list[_PendingRequest[K, V]], exc: BaseException) -> None:
        for request in batch:
            self._forget_cancelled(request)
            for future in request.futures:
                if not future.done():
                    future.set_exception(exc)

    def _forget_cancelled(self, request: _PendingRequest[K, V]) -> None:
        """Drop a cancelled handle from the cache so the key can be loaded again."""
        cached = self._cache.get(request.cache_key)
        if cached is not None and cached.cancelled() and cached in request.futures:
            del self._cache[request.cache_key]
