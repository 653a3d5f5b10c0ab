"""Short-TTL memoization with in-flight request sharing.

Correlation requests are expensive (archive fetches plus per-date cache
reads) and the same season is often requested by several callers at once.
``ComputationCache.get_or_compute`` guarantees:

  - a fresh cached result is returned without running anything
  - at most one computation per key is in flight; concurrent callers await
    the same task and receive the same result object
  - the in-flight registration is cleared on success and on failure, so a
    failed computation is retried by the next caller
  - a caller that is cancelled stops waiting, but the shared computation
    keeps running for everyone else and its result is still cached

Failures are never cached.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from functools import partial
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")

DEFAULT_TTL = 90.0  # seconds


@dataclass
class CacheEntry(Generic[T]):
    """A memoized result and its expiry (clock seconds)."""

    key: Hashable
    result: T
    expires_at: float


class ComputationCache(Generic[T]):
    """Per-key TTL cache plus a map of pending computations."""

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry[T]] = {}
        self._pending: dict[Hashable, asyncio.Task[T]] = {}

    async def get_or_compute(self, key: Hashable, compute: Callable[[], Awaitable[T]]) -> T:
        """Return the cached result for ``key``, joining or starting a computation."""
        entry = self._entries.get(key)
        if entry is not None and entry.expires_at > self._clock():
            logger.debug("Computation cache hit for {}", key)
            return entry.result

        task = self._pending.get(key)
        if task is not None:
            logger.debug("Joining in-flight computation for {}", key)
        else:
            task = asyncio.ensure_future(compute())
            self._pending[key] = task
            task.add_done_callback(partial(self._settle, key))
        # Cancelling one caller must not cancel the computation other callers share
        return await asyncio.shield(task)

    def _settle(self, key: Hashable, task: asyncio.Task[T]) -> None:
        self._pending.pop(key, None)
        if task.cancelled() or task.exception() is not None:
            return
        self._store(key, task.result())

    def _store(self, key: Hashable, result: T) -> None:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        self._entries[key] = CacheEntry(key=key, result=result, expires_at=now + self.ttl)
