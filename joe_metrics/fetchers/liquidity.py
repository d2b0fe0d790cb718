"""
Liquidity Fetcher - Pool TVL, trailing volume, LP fees and fee APR.

Fetches AMM pair metrics including:
- TVL (both reserve tokens valued at spot price)
- 24h swap volume (rolling window of hourly samples)
- 24h LP fees
- Pool APR from fees
"""

import asyncio
from decimal import Decimal
from typing import Optional, Tuple

from ..config.settings import FEES_PERCENT
from ..core.decimal_math import (
    DAYS_PER_YEAR,
    HUNDRED,
    add,
    div,
    mul,
    round_places,
    scale_down,
    total,
)
from ..core.plan import MetricPlan, MetricStep
from ..core.registry import normalize_address
from ..core.results import ContractRevertError, MetricKind, MetricResult, NotLPTokenError
from .abis import ERC20_ABI, JOE_PAIR_ABI, SWAP_EVENT_ABI
from .price import token_decimals, token_price


async def pair_tokens(ctx, lp_token: str) -> Optional[Tuple[str, str]]:
    """
    Return (token0, token1) of an AMM pair, or None if `lp_token` is not a pair.

    A revert of token0()/token1() marks a non-pair; any other failure propagates.
    Only successful lookups are cached, with the static TTL.
    """
    lp_token = normalize_address(lp_token)

    async def compute():
        token0, token1 = await asyncio.gather(
            ctx.chain.call_contract(lp_token, "token0", abi=JOE_PAIR_ABI),
            ctx.chain.call_contract(lp_token, "token1", abi=JOE_PAIR_ABI),
        )
        return normalize_address(token0), normalize_address(token1)

    try:
        return await ctx.cached(lp_token, MetricKind.PAIR_TOKENS, compute)
    except ContractRevertError:
        return None


def tvl_plan(ctx, lp_token: str) -> MetricPlan:
    """Reserve balances, decimals and prices of both pair tokens, then TVL."""

    async def tokens(_):
        result = await pair_tokens(ctx, lp_token)
        if result is None:
            raise NotLPTokenError(lp_token)
        return result

    def balance(index):
        return lambda r: ctx.chain.call_contract(r["tokens"][index], "balanceOf", [lp_token], abi=ERC20_ABI)

    def decimals(index):
        return lambda r: token_decimals(ctx, r["tokens"][index])

    def price(index):
        return lambda r: token_price(ctx, r["tokens"][index])

    def combine(r):
        value0 = mul(scale_down(r["balance0"], r["decimals0"]), r["price0"])
        value1 = mul(scale_down(r["balance1"], r["decimals1"]), r["price1"])
        return round_places(add(value0, value1), 2)

    return MetricPlan("tvl", [
        MetricStep("tokens", tokens),
        MetricStep("balance0", balance(0), ("tokens",)),
        MetricStep("balance1", balance(1), ("tokens",)),
        MetricStep("decimals0", decimals(0), ("tokens",)),
        MetricStep("decimals1", decimals(1), ("tokens",)),
        MetricStep("price0", price(0), ("tokens",)),
        MetricStep("price1", price(1), ("tokens",)),
        MetricStep("tvl", combine, ("balance0", "balance1", "decimals0", "decimals1", "price0", "price1")),
    ])


async def pool_tvl(ctx, lp_token: str) -> Decimal:
    """
    USD value held by a pair, cached with the TVL TTL.

    Raises:
        NotLPTokenError: `lp_token` is not an AMM pair
        RemoteCallError: a balance, decimals or price lookup failed
    """
    lp_token = normalize_address(lp_token)

    async def compute():
        results = await tvl_plan(ctx, lp_token).run()
        return results["tvl"]

    return await ctx.cached(lp_token, MetricKind.TVL, compute)


async def _swap_volume_sample(ctx, lp_token: str, tokens: Tuple[str, str], start_ms: int, end_ms: int) -> Decimal:
    """USD value of all swap inputs of one pair over [start_ms, end_ms]."""
    token0, token1 = tokens
    events, decimals0, decimals1, price0, price1 = await asyncio.gather(
        ctx.events.fetch_events(lp_token, SWAP_EVENT_ABI, start_ms, end_ms),
        token_decimals(ctx, token0),
        token_decimals(ctx, token1),
        token_price(ctx, token0),
        token_price(ctx, token1),
    )
    return total(
        add(
            mul(scale_down(event.get("amount0In", 0), decimals0), price0),
            mul(scale_down(event.get("amount1In", 0), decimals1), price1),
        )
        for event in events
    )


async def pool_volume(ctx, lp_token: str, tokens: Tuple[str, str]) -> Decimal:
    """Trailing 24h swap volume from the pair's rolling window."""

    async def sample(slot, start_ms, end_ms):
        return await _swap_volume_sample(ctx, lp_token, tokens, start_ms, end_ms)

    return await ctx.windows.refresh((lp_token, MetricKind.POOL_VOLUME), sample, ctx.window_interval_ms)


async def pool_fees(ctx, lp_token: str, tokens: Tuple[str, str]) -> Decimal:
    volume = await pool_volume(ctx, lp_token, tokens)
    return mul(volume, Decimal(FEES_PERCENT))


# =============================================================================
# METRICS
# =============================================================================

async def get_tvl(ctx, lp_token: str) -> MetricResult:
    """Pool TVL in USD (2 decimals)."""
    lp_token = normalize_address(lp_token)
    try:
        return MetricResult.ok(await pool_tvl(ctx, lp_token))
    except NotLPTokenError:
        return MetricResult.not_lp(lp_token)


async def get_24h_volume(ctx, lp_token: str) -> MetricResult:
    """Trailing 24h swap volume in USD (2 decimals)."""
    lp_token = normalize_address(lp_token)
    tokens = await pair_tokens(ctx, lp_token)
    if tokens is None:
        return MetricResult.not_lp(lp_token)
    return MetricResult.ok(round_places(await pool_volume(ctx, lp_token, tokens), 2))


async def get_transaction_fees(ctx, lp_token: str) -> MetricResult:
    """Trailing 24h fees paid to liquidity providers in USD (2 decimals)."""
    lp_token = normalize_address(lp_token)
    tokens = await pair_tokens(ctx, lp_token)
    if tokens is None:
        return MetricResult.not_lp(lp_token)
    return MetricResult.ok(round_places(await pool_fees(ctx, lp_token, tokens), 2))


async def get_pool_apr(ctx, lp_token: str) -> MetricResult:
    """Fee APR of a pool: fees * 365 / TVL * 100 (2 decimals)."""
    lp_token = normalize_address(lp_token)
    tokens = await pair_tokens(ctx, lp_token)
    if tokens is None:
        return MetricResult.not_lp(lp_token)

    plan = MetricPlan("pool_apr", [
        MetricStep("fees", lambda r: pool_fees(ctx, lp_token, tokens)),
        MetricStep("tvl", lambda r: pool_tvl(ctx, lp_token)),
        MetricStep("apr", lambda r: mul(div(mul(r["fees"], DAYS_PER_YEAR), r["tvl"]), HUNDRED), ("fees", "tvl")),
    ])
    results = await plan.run()
    return MetricResult.ok(round_places(results["apr"], 2))
