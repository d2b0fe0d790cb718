"""
Metrics context - the process-owned state handed to every metric function.

Constructed once at startup (see joe_metrics.fetchers.create_context) and
passed by reference; tests build a fresh one per test.
"""

from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

from ..config.settings import TTL_CONFIG, WINDOW_CONFIG
from .registry import EntityRegistry
from .results import MetricKind, TTL_ALIASES
from .rolling_window import RollingWindowStore
from .ttl_cache import Clock, TTLCache, wall_clock_ms


class MetricsContext:
    """
    Collaborators plus the cache, registry and rolling windows they feed.

    Attributes:
        chain: External source adapter (call_contract)
        prices: Price-resolution collaborator (get_price)
        events: Event log source for hourly samples (fetch_events)
        clock: Wall clock in milliseconds
    """

    def __init__(
        self,
        chain,
        prices,
        events=None,
        clock: Optional[Clock] = None,
        ttl_config: Optional[Dict[str, int]] = None,
        window_config: Optional[Dict[str, int]] = None,
    ):
        self.chain = chain
        self.prices = prices
        self.events = events
        self.clock: Clock = clock or wall_clock_ms

        self.ttl_config = dict(TTL_CONFIG)
        if ttl_config:
            self.ttl_config.update(ttl_config)

        windows = dict(WINDOW_CONFIG)
        if window_config:
            windows.update(window_config)
        self.window_interval_ms = windows["slot_seconds"] * 1000

        self.cache = TTLCache(self.clock)
        self.registry = EntityRegistry()
        self.windows = RollingWindowStore(self.clock, size=windows["slots"], slot_ms=self.window_interval_ms)

    def ttl_ms(self, kind: MetricKind) -> int:
        """TTL of a metric kind in milliseconds."""
        key = TTL_ALIASES.get(kind, kind.value)
        try:
            return int(self.ttl_config[key]) * 1000
        except KeyError:
            raise KeyError(f"No TTL configured for metric kind: {key}") from None

    async def cached(
        self,
        entity_id: Hashable,
        kind: MetricKind,
        compute_fn: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Get-or-refresh (entity_id, kind) with the kind's configured TTL."""
        return await self.cache.get_or_refresh((entity_id, kind), self.ttl_ms(kind), compute_fn)

    async def aclose(self) -> None:
        """Release network resources held by collaborators."""
        for collaborator in (self.events, self.prices, self.chain):
            close = getattr(collaborator, "aclose", None)
            if close is not None:
                await close()
