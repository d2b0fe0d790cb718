"""
TTL Cache Store - per-key cached values with get-or-refresh semantics.

Each entry remembers when it was computed and for how long it may be served.
A read either returns a value younger than its TTL or recomputes it first.
Failed recomputes leave the previous entry untouched, so the next read tries
again. Concurrent refreshes of one key share a single in-flight computation.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    value: Any
    computed_at: int
    ttl: int

    def age(self, now: int) -> int:
        return now - self.computed_at

    def is_fresh(self, now: int, ttl: Optional[int] = None) -> bool:
        return self.age(now) < (self.ttl if ttl is None else ttl)


class TTLCache:
    """
    Process-lifetime cache keyed by (entity_id, metric_kind).

    Entries are never evicted; the keyspace is bounded by the number of
    tracked entities times the number of metric kinds.
    """

    def __init__(self, clock: Clock = wall_clock_ms):
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._inflight: Dict[Hashable, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def peek(self, key: Hashable) -> Optional[CacheEntry]:
        """Return the stored entry (fresh or stale) without refreshing."""
        return self._entries.get(key)

    def is_fresh(self, key: Hashable, ttl: int) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.is_fresh(self._clock(), ttl)

    async def get_or_refresh(
        self,
        key: Hashable,
        ttl: int,
        compute_fn: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Return the cached value for `key`, recomputing it when absent or stale.

        Args:
            key: Cache key, usually (entity_id, MetricKind)
            ttl: Maximum age in milliseconds
            compute_fn: Async callable producing a fresh value

        Returns:
            The cached or freshly computed value

        Raises:
            Whatever compute_fn raises; the cache is left unchanged.
        """
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self._clock(), ttl):
            return entry.value

        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(self._refresh(key, ttl, compute_fn))
            self._inflight[key] = task
            task.add_done_callback(lambda finished: self._forget(key, finished))
        else:
            logger.debug("Joining in-flight refresh of %s", key)

        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _refresh(self, key: Hashable, ttl: int, compute_fn: Callable[[], Awaitable[Any]]) -> Any:
        logger.debug("Recomputing %s", key)
        try:
            value = await compute_fn()
        except Exception as e:
            logger.debug("Refresh of %s failed: %s", key, e)
            raise
        self._entries[key] = CacheEntry(value=value, computed_at=self._clock(), ttl=ttl)
        return value
