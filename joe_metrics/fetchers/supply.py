"""
Supply Fetcher - JOE token supply figures.

All values are raw token units (18 decimals) except the adjusted
circulating supply, which is expressed in whole JOE.
"""

import asyncio
from decimal import Decimal
from typing import Sequence

from ..config.settings import CONTRACTS, TEAM_TREASURY_WALLETS
from ..core.decimal_math import WAD, div, sub, to_decimal
from ..core.registry import normalize_address
from ..core.results import MetricKind, MetricResult
from .abis import JOE_TOKEN_ABI


async def _joe_balance(ctx, holder: str):
    return await ctx.chain.call_contract(CONTRACTS["joe"], "balanceOf", [holder], abi=JOE_TOKEN_ABI)


async def joe_total_supply(ctx) -> Decimal:
    """totalSupply() minus the burn address balance."""
    joe = normalize_address(CONTRACTS["joe"])

    async def compute():
        supply, burned = await asyncio.gather(
            ctx.chain.call_contract(joe, "totalSupply", abi=JOE_TOKEN_ABI),
            _joe_balance(ctx, CONTRACTS["burn"]),
        )
        return sub(supply, burned)

    return await ctx.cached(joe, MetricKind.JOE_TOTAL_SUPPLY, compute)


async def joe_circulating_supply(ctx, wallets: Sequence[str] = None) -> Decimal:
    """
    Total supply minus team / treasury holdings and the burn balance.

    Args:
        ctx: Metrics context
        wallets: Excluded wallets (defaults to settings.TEAM_TREASURY_WALLETS)

    Returns:
        Circulating supply in raw units
    """
    wallets = tuple(normalize_address(w) for w in (TEAM_TREASURY_WALLETS if wallets is None else wallets))
    joe = normalize_address(CONTRACTS["joe"])

    async def compute():
        results = await asyncio.gather(
            joe_total_supply(ctx),
            *(_joe_balance(ctx, wallet) for wallet in wallets),
            _joe_balance(ctx, CONTRACTS["burn"]),
        )
        circulating = to_decimal(results[0])
        for balance in results[1:]:
            circulating = sub(circulating, balance)
        return circulating

    return await ctx.cached((joe, wallets), MetricKind.JOE_CIRCULATING_SUPPLY, compute)


# =============================================================================
# METRICS
# =============================================================================

async def get_joe_total_supply(ctx) -> MetricResult:
    return MetricResult.ok(await joe_total_supply(ctx))


async def get_max_supply(ctx) -> MetricResult:
    joe = normalize_address(CONTRACTS["joe"])

    async def compute():
        return to_decimal(await ctx.chain.call_contract(joe, "maxSupply", abi=JOE_TOKEN_ABI))

    return MetricResult.ok(await ctx.cached(joe, MetricKind.MAX_SUPPLY, compute))


async def get_circulating_supply(ctx, wallets: Sequence[str] = None) -> MetricResult:
    return MetricResult.ok(await joe_circulating_supply(ctx, wallets))


async def get_circulating_supply_adjusted(ctx, wallets: Sequence[str] = None) -> MetricResult:
    """Circulating supply in whole JOE."""
    return MetricResult.ok(div(await joe_circulating_supply(ctx, wallets), WAD))
