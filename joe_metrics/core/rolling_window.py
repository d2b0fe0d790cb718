"""
Rolling Window Store - fixed-size circular buffers of hourly aggregates.

A window holds N slots (24 by default) of Decimal samples. It is filled in
one go by backfill() and afterwards advanced one slot at a time by
roll_forward(); sum() gives the trailing aggregate.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable, Dict, Hashable, List, Optional

from .decimal_math import to_decimal, total
from .results import WindowNotInitializedError
from .ttl_cache import Clock, wall_clock_ms

logger = logging.getLogger(__name__)

# sample_fn(slot_index, start_ms, end_ms) -> aggregate for that interval
SampleFn = Callable[[int, int, int], Awaitable[Decimal]]

HOUR_MS = 3600 * 1000


class RollingWindow:
    """Circular buffer with a pointer to the most recently written slot."""

    def __init__(self, size: int):
        if size < 1:
            raise ValueError(f"Window size must be positive, got {size}")
        self.size = size
        self.slots: List[Decimal] = []
        self.position: Optional[int] = None
        self.last_updated: Optional[int] = None

    @property
    def initialized(self) -> bool:
        return len(self.slots) == self.size

    def fill(self, samples: List[Decimal], now: int) -> None:
        if len(samples) != self.size:
            raise ValueError(f"Expected {self.size} samples, got {len(samples)}")
        self.slots = [to_decimal(sample) for sample in samples]
        self.position = self.size - 1
        self.last_updated = now

    def next_position(self) -> int:
        if not self.initialized:
            raise WindowNotInitializedError("Window has not been backfilled")
        return (self.position + 1) % self.size

    def advance(self, sample: Decimal, now: int) -> int:
        slot = self.next_position()
        self.slots[slot] = to_decimal(sample)
        self.position = slot
        self.last_updated = now
        return slot

    def total(self) -> Decimal:
        if not self.initialized:
            raise WindowNotInitializedError("Window has not been backfilled")
        return total(self.slots)


class RollingWindowStore:
    """
    Lazily created rolling windows keyed by entity id.

    Windows live for the process lifetime.
    """

    def __init__(self, clock: Clock = wall_clock_ms, size: int = 24, slot_ms: int = HOUR_MS):
        self._clock = clock
        self.size = size
        self.slot_ms = slot_ms
        self._windows: Dict[Hashable, RollingWindow] = {}
        self._inflight: Dict[Hashable, asyncio.Task] = {}

    def window(self, entity_id: Hashable) -> RollingWindow:
        window = self._windows.get(entity_id)
        if window is None:
            window = RollingWindow(self.size)
            self._windows[entity_id] = window
        return window

    def is_initialized(self, entity_id: Hashable) -> bool:
        window = self._windows.get(entity_id)
        return window is not None and window.initialized

    async def backfill(self, entity_id: Hashable, sample_fn: SampleFn) -> None:
        """
        Sample all N slots, oldest first, each covering one non-overlapping
        slot interval ending now. Nothing is stored unless every sample succeeds.
        """
        window = self.window(entity_id)
        now = self._clock()
        size = window.size
        samples = await asyncio.gather(*(
            sample_fn(
                slot,
                now - (size - slot) * self.slot_ms,
                now - (size - 1 - slot) * self.slot_ms,
            )
            for slot in range(size)
        ))
        window.fill(list(samples), now)
        logger.debug("Backfilled window %s with %d slots", entity_id, size)

    async def roll_forward(self, entity_id: Hashable, sample_fn: SampleFn) -> int:
        """
        Sample the latest slot interval into the slot after `position`.

        Returns:
            Index of the slot written

        Raises:
            WindowNotInitializedError: the window was never backfilled
        """
        window = self.window(entity_id)
        slot = window.next_position()
        started_from = window.last_updated
        now = self._clock()
        sample = await sample_fn(slot, now - self.slot_ms, now)
        if window.last_updated != started_from:
            # A concurrent refresh already advanced this window
            return window.position
        written = window.advance(sample, now)
        logger.debug("Rolled window %s forward into slot %d", entity_id, written)
        return written

    def sum(self, entity_id: Hashable) -> Decimal:
        return self.window(entity_id).total()

    async def refresh(self, entity_id: Hashable, sample_fn: SampleFn, interval_ms: int = None) -> Decimal:
        """
        Bring a window up to date and return its sum.

        Uninitialized windows are backfilled, windows older than `interval_ms`
        are rolled forward by one slot, fresh windows are left alone.
        Concurrent refreshes of one window share a single update.
        """
        interval_ms = self.slot_ms if interval_ms is None else interval_ms
        window = self.window(entity_id)
        if window.initialized and self._clock() - window.last_updated < interval_ms:
            return window.total()

        task = self._inflight.get(entity_id)
        if task is None or task.done():
            task = asyncio.ensure_future(self._update(entity_id, sample_fn))
            self._inflight[entity_id] = task
            task.add_done_callback(lambda finished: self._forget(entity_id, finished))
        else:
            logger.debug("Joining in-flight update of window %s", entity_id)

        await asyncio.shield(task)
        return window.total()

    def _forget(self, entity_id: Hashable, task: asyncio.Task) -> None:
        if self._inflight.get(entity_id) is task:
            del self._inflight[entity_id]

    async def _update(self, entity_id: Hashable, sample_fn: SampleFn) -> None:
        if self.window(entity_id).initialized:
            await self.roll_forward(entity_id, sample_fn)
        else:
            await self.backfill(entity_id, sample_fn)
