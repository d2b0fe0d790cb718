"""
Metric results and error taxonomy.

Metric functions return a MetricResult instead of overloading the success
value with human readable strings:
- OK: value holds the metric (Decimal, list or dict)
- NOT_TRACKED: the address is absent from every relevant registry partition
- NOT_LP: the address does not behave like an AMM pair token
- ERROR: only produced by the request handler when an exception escapes

Remote failures are raised (RemoteCallError) and never turned into values
inside the metric engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class MetricStatus(Enum):
    OK = "success"
    NOT_TRACKED = "not_tracked"
    NOT_LP = "not_lp_token"
    ERROR = "error"


class MetricKind(str, Enum):
    """Cache key kinds. Values double as keys of settings.TTL_CONFIG."""
    JOE_TOTAL_SUPPLY = "joe_supply"
    JOE_CIRCULATING_SUPPLY = "joe_circulating_supply"
    MAX_SUPPLY = "max_supply"
    LENDING_MARKET = "lending_market"
    LENDING_TOTALS = "lending_totals"
    SUPPLY_APY = "supply_apy"
    BORROW_APY = "borrow_apy"
    SUPPLY_REWARDS_APR = "supply_rewards_apr"
    BORROW_REWARDS_APR = "borrow_rewards_apr"
    PRICE = "price"
    DERIVED_PRICE = "derived_price"
    TVL = "tvl"
    PAIR_TOKENS = "pair_tokens"
    TOKEN_DECIMALS = "token_decimals"
    FARM_APR = "farm_apr"
    FARM_LIQUIDITY = "farm_liquidity"
    BONUS_APR = "bonus_apr"
    POOL_WEIGHT = "pool_weight"
    POOL_VOLUME = "pool_volume"
    STAKE_FEES = "stake_fees"
    STAKE_APR = "stake_apr"
    STATIC = "static"


# Kinds sharing a TTL entry with another kind
TTL_ALIASES = {
    MetricKind.JOE_CIRCULATING_SUPPLY: "joe_supply",
    MetricKind.SUPPLY_APY: "lending_rate",
    MetricKind.BORROW_APY: "lending_rate",
    MetricKind.SUPPLY_REWARDS_APR: "lending_rewards",
    MetricKind.BORROW_REWARDS_APR: "lending_rewards",
    MetricKind.PAIR_TOKENS: "static",
    MetricKind.TOKEN_DECIMALS: "static",
}


@dataclass(frozen=True)
class MetricResult:
    """Tagged result of a single metric computation."""
    status: MetricStatus
    value: Any = None
    reason: str = ""

    @classmethod
    def ok(cls, value: Any) -> "MetricResult":
        return cls(MetricStatus.OK, value)

    @classmethod
    def not_tracked(cls, address: str, reason: str = "Address is not a tracked entity") -> "MetricResult":
        return cls(MetricStatus.NOT_TRACKED, None, f"{reason}: {address}")

    @classmethod
    def not_lp(cls, address: str) -> "MetricResult":
        return cls(MetricStatus.NOT_LP, None, f"Address passed in is not an LP token: {address}")

    @classmethod
    def error(cls, reason: str) -> "MetricResult":
        return cls(MetricStatus.ERROR, None, reason)

    @property
    def is_ok(self) -> bool:
        return self.status == MetricStatus.OK


# =============================================================================
# ERRORS
# =============================================================================

class MetricError(Exception):
    """Base class for failures surfaced to request handlers."""
    status_code = 500


class RemoteCallError(MetricError):
    """An external source call failed (network error, revert, bad response)."""
    status_code = 502

    def __init__(self, target: str, method: str, cause: Optional[BaseException] = None):
        self.target = target
        self.method = method
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Remote call {method} on {target} failed{detail}")


class ContractRevertError(RemoteCallError):
    """The node answered but the call reverted or returned undecodable data."""


class MalformedInputError(MetricError):
    """A required request parameter is missing or invalid."""
    status_code = 400


class NotLPTokenError(MetricError):
    """The address does not implement token0()/token1(); metric functions return MetricResult.not_lp."""
    status_code = 404

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Address passed in is not an LP token: {address}")


class UndefinedMetricError(MetricError):
    """A metric has no defined value, e.g. its denominator is zero."""
    status_code = 422


class WindowNotInitializedError(RuntimeError):
    """roll_forward was called before the window was backfilled."""
