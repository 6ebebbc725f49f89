"""Dispatch schedulers for batch loaders.

A scheduler decides *when* a loader's queued keys are flushed. Every ``load``
issued before that moment joins the same batch.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

Dispatch = Callable[[], Awaitable[None]]


class BatchScheduler(ABC):
    """Interface for dispatch schedulers."""

    @abstractmethod
    def schedule(self, dispatch: Dispatch) -> None:
        """Arrange for ``dispatch`` to run once the current unit of work ends."""
        raise NotImplementedError


class EventLoopScheduler(BatchScheduler):
    """Run dispatches on the next iteration of the running event loop.

    ``loop.call_soon`` callbacks run in FIFO order, so every task already made
    runnable by the current iteration (e.g. the members of an
    ``asyncio.gather``) gets to call ``load`` before the dispatch starts.
    """

    def __init__(self) -> None:
        # Strong references so in-flight dispatch tasks are not collected
        self._tasks: set[asyncio.Task[None]] = set()

    def schedule(self, dispatch: Dispatch) -> None:
        loop = asyncio.get_running_loop()
        loop.call_soon(self._start, loop, dispatch)

    def _start(self, loop: asyncio.AbstractEventLoop, dispatch: Dispatch) -> None:
        task = loop.create_task(dispatch())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class ManualScheduler(BatchScheduler):
    """Hold dispatches until the host calls :meth:`flush`.

    Useful when the host framework knows exactly where a unit of work ends,
    or in tests that need deterministic batch boundaries.
    """

    def __init__(self) -> None:
        self._pending: list[Dispatch] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, dispatch: Dispatch) -> None:
        self._pending.append(dispatch)

    async def flush(self) -> None:
        """Run queued dispatches, including any scheduled while flushing."""
        while self._pending:
            pending, self._pending = self._pending, []
            for dispatch in pending:
                await dispatch()
