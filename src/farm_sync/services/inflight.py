"""Shared fetch deduplication.

Both caches collapse concurrent requests for the same key into a single
producer call. The registry maps a key to the ``asyncio.Task`` running
that call; later callers await the same task instead of starting another.

Invariants:
- At most one task per key is registered at any time.
- A marker is released when its task finishes, whether it succeeded or failed.
- ``on_success`` runs only while the task still owns its key, so a
  result fetched before a ``discard`` is never committed.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import structlog

T = TypeVar("T")

logger = structlog.get_logger(__name__)


def monotonic_ms() -> float:
    """Default clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000


def _consume_result(task: asyncio.Task) -> None:
    # Every waiter may have been cancelled; mark the exception as retrieved.
    if not task.cancelled():
        task.exception()


class InflightRequests(Generic[T]):
    """Registry of in-flight producer calls, keyed by cache key."""

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task[T]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def keys(self) -> list[str]:
        return list(self._tasks)

    async def run(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        on_success: Callable[[T], T] | None = None,
    ) -> T:
        """Join the in-flight call for ``key`` or start one.

        Args:
            key: Deduplication key
            factory: Zero-argument producer, only called when nothing is in flight
            on_success: Commit hook run synchronously with the producer's result
                while the task still owns ``key``; its return value is what
                every waiter receives

        Returns:
            The (committed) producer result

        Raises:
            Exception: Whatever the producer raised, for every waiter
        """
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(self._execute(key, factory, on_success))
            task.add_done_callback(_consume_result)
            self._tasks[key] = task
        # A waiter being cancelled must not cancel the shared call.
        return await asyncio.shield(task)

    async def _execute(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        on_success: Callable[[T], T] | None,
    ) -> T:
        current = asyncio.current_task()
        try:
            value = await factory()
            if on_success is not None and self._tasks.get(key) is current:
                value = on_success(value)
            return value
        finally:
            self._release(key, current)

    def _release(self, key: str, task: asyncio.Task | None) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def discard(self, matches: Callable[[str], bool]) -> int:
        """Forget the markers whose key matches.

        Tasks keep running and still resolve their current waiters, but the
        next caller starts a fresh call and the old result is not committed.

        Returns:
            Number of markers dropped
        """
        keys = [key for key in self._tasks if matches(key)]
        for key in keys:
            del self._tasks[key]
        return len(keys)

    async def aclose(self) -> None:
        """Cancel every in-flight call and wait for them to unwind."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.debug("inflight_cancelled", count=len(tasks))
