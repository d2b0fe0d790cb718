"""
API Handler - maps versioned routes to metric functions.

Transport agnostic: handle() takes a route template plus path parameters and
returns a Lambda-style response:

    {"statusCode": 200, "body": {"status": "success", "result": "15.77"}}

Decimal results are serialized as strings so no precision is lost.
"""

import asyncio
import json
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from web3 import Web3

from ..config.logging_config import setup_logging
from ..core.context import MetricsContext
from ..core.results import MalformedInputError, MetricError, MetricResult, MetricStatus
from ..fetchers import (
    create_context,
    get_24h_volume,
    get_bonus_apr,
    get_borrow_apy,
    get_borrow_rewards_apr,
    get_circulating_supply,
    get_circulating_supply_adjusted,
    get_farm_apr,
    get_farm_liquidity,
    get_joe_total_supply,
    get_max_supply,
    get_pool_apr,
    get_pool_weight,
    get_stake_apr,
    get_stake_apy,
    get_stake_fees,
    get_supply_apy,
    get_supply_rewards_apr,
    get_total_borrow,
    get_total_supply,
    get_transaction_fees,
    get_tvl,
    list_entities,
    list_pools,
    token_price,
    token_price_avax,
)

logger = logging.getLogger(__name__)

MetricFn = Callable[..., Awaitable[MetricResult]]

STATUS_CODES = {
    MetricStatus.OK: 200,
    MetricStatus.NOT_TRACKED: 404,
    MetricStatus.NOT_LP: 404,
    MetricStatus.ERROR: 500,
}


async def get_price_usd(ctx, token: str) -> MetricResult:
    return MetricResult.ok(await token_price(ctx, token))


async def get_price_avax(ctx, token: str) -> MetricResult:
    return MetricResult.ok(await token_price_avax(ctx, token))


# Route template -> (metric function, required path parameter)
ROUTES: Dict[str, Tuple[MetricFn, Optional[str]]] = {
    # Supply
    "/v1/supply/circulating": (get_circulating_supply, None),
    "/v1/supply/circulating-adjusted": (get_circulating_supply_adjusted, None),
    "/v1/supply/total": (get_joe_total_supply, None),
    "/v1/supply/max": (get_max_supply, None),
    # Prices
    "/v1/priceavax/:tokenAddress": (get_price_avax, "tokenAddress"),
    "/v1/priceusd/:tokenAddress": (get_price_usd, "tokenAddress"),
    # Lending
    "/v1/lending/list": (list_entities, None),
    "/v1/lending/supply": (get_total_supply, None),
    "/v1/lending/borrow": (get_total_borrow, None),
    "/v2/lending/depositAPY/:lendingPool": (get_supply_apy, "lendingPool"),
    "/v2/lending/depositRewardsAPR/:lendingPool": (get_supply_rewards_apr, "lendingPool"),
    "/v2/lending/borrowAPY/:lendingPool": (get_borrow_apy, "lendingPool"),
    "/v2/lending/borrowRewardsAPR/:lendingPool": (get_borrow_rewards_apr, "lendingPool"),
    # Farms
    "/v2/farm/list": (list_pools, None),
    "/v2/farm/poolweight/:lpToken": (get_pool_weight, "lpToken"),
    "/v2/farm/APR/:lpToken": (get_farm_apr, "lpToken"),
    "/v2/farm/liquidity/:lpToken": (get_farm_liquidity, "lpToken"),
    "/v2/farm/bonusAPR/:lpToken": (get_bonus_apr, "lpToken"),
    # Pools
    "/v2/pool/liquidity/:lpToken": (get_tvl, "lpToken"),
    "/v2/pool/volume/:lpToken": (get_24h_volume, "lpToken"),
    "/v2/pool/fees/:lpToken": (get_transaction_fees, "lpToken"),
    "/v2/pool/APR/:lpToken": (get_pool_apr, "lpToken"),
    # Stake
    "/v2/stake/fees": (get_stake_fees, None),
    "/v2/stake/APR": (get_stake_apr, None),
    "/v2/stake/APY": (get_stake_apy, None),
}


def serialize(value: Any) -> Any:
    """Recursively convert Decimals to strings for JSON bodies."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {key: serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]
    return value


def _response(status_code: int, status: str, result: Any) -> Dict[str, Any]:
    return {"statusCode": status_code, "body": {"status": status, "result": result}}


def _address_param(route: str, name: str, params: Dict[str, str]) -> str:
    value = (params or {}).get(name)
    if not value:
        raise MalformedInputError(f"Missing path parameter '{name}' for {route}")
    if not Web3.is_address(value):
        raise MalformedInputError(f"Invalid address for '{name}': {value}")
    return value.lower()


async def handle(ctx: MetricsContext, route: str, params: Dict[str, str] = None) -> Dict[str, Any]:
    """
    Run the metric behind `route`.

    Args:
        ctx: Metrics context shared by all requests
        route: Route template, e.g. "/v2/farm/APR/:lpToken"
        params: Path parameters by name

    Returns:
        Dict with statusCode and body {"status", "result"}
    """
    if route not in ROUTES:
        return _response(404, "error", f"Unknown route: {route}")
    metric_fn, param = ROUTES[route]

    try:
        args = (_address_param(route, param, params),) if param else ()
        result = await metric_fn(ctx, *args)
    except MetricError as e:
        logger.warning("%s failed: %s", route, e)
        if e.status_code == 500:
            return _response(500, "error", "Internal Server Error")
        return _response(e.status_code, "error", str(e))
    except Exception:
        logger.exception("Unhandled error serving %s", route)
        return _response(500, "error", "Internal Server Error")

    if result.is_ok:
        return _response(200, "success", serialize(result.value))
    return _response(STATUS_CODES[result.status], "error", result.reason)


# =============================================================================
# LAMBDA ENTRYPOINT
# =============================================================================

_context: Optional[MetricsContext] = None
_loop: Optional[asyncio.AbstractEventLoop] = None


def handler(event, context):
    """
    AWS Lambda handler.

    The metrics context and its event loop live for the container lifetime so
    cache entries, registry partitions and rolling windows survive between
    invocations.

    Args:
        event: {"route": "/v2/pool/APR/:lpToken", "pathParameters": {"lpToken": "0x..."}}
        context: Lambda context

    Returns:
        Dict with statusCode and body
    """
    global _context, _loop
    if _loop is None:
        setup_logging()
        _loop = asyncio.new_event_loop()
    if _context is None:
        _context = create_context()

    event = event or {}
    return _loop.run_until_complete(handle(_context, event.get("route", ""), event.get("pathParameters")))


# For local testing
if __name__ == "__main__":
    print("Testing API handler locally...")
    result = handler({"route": "/v1/supply/total"}, None)
    print(json.dumps(result, indent=2, default=str))
