"""Core metric engine components."""

from .decimal_math import (
    DAYS_PER_YEAR,
    SECONDS_PER_YEAR,
    WAD,
    apr_to_apy,
    div,
    mul,
    pow_int,
    round_places,
    scale_down,
    to_decimal,
)

from .results import (
    MetricKind,
    MetricStatus,
    MetricResult,
    MetricError,
    RemoteCallError,
    ContractRevertError,
    MalformedInputError,
    NotLPTokenError,
    UndefinedMetricError,
    WindowNotInitializedError,
)

from .ttl_cache import CacheEntry, TTLCache, wall_clock_ms

from .registry import (
    Entity,
    EntityRegistry,
    PartitionSource,
    RegistryPartition,
    normalize_address,
)

from .rolling_window import RollingWindow, RollingWindowStore

from .plan import MetricPlan, MetricStep

from .context import MetricsContext

__all__ = [
    # Decimal math
    "DAYS_PER_YEAR",
    "SECONDS_PER_YEAR",
    "WAD",
    "apr_to_apy",
    "div",
    "mul",
    "pow_int",
    "round_places",
    "scale_down",
    "to_decimal",
    # Results
    "MetricKind",
    "MetricStatus",
    "MetricResult",
    "MetricError",
    "RemoteCallError",
    "ContractRevertError",
    "MalformedInputError",
    "NotLPTokenError",
    "UndefinedMetricError",
    "WindowNotInitializedError",
    # Cache
    "CacheEntry",
    "TTLCache",
    "wall_clock_ms",
    # Registry
    "Entity",
    "EntityRegistry",
    "PartitionSource",
    "RegistryPartition",
    "normalize_address",
    # Rolling windows
    "RollingWindow",
    "RollingWindowStore",
    # Plans
    "MetricPlan",
    "MetricStep",
    # Context
    "MetricsContext",
]
