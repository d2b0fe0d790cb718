"""
Joe Metrics Package.

Read-only protocol metrics for Trader Joe on Avalanche C-Chain:
- JOE supply (total, max, circulating)
- Banker Joe lending totals, interest APY and rewards APR
- MasterChef farm weight, liquidity, APR and bonus APR
- Pool TVL, 24h volume, fees and fee APR
- xJOE staking fees, APR and APY

Quick Start:
    import asyncio
    from joe_metrics import create_context, get_farm_apr

    async def main():
        ctx = create_context()
        try:
            result = await get_farm_apr(ctx, "0x...")
            print(result.status, result.value)
        finally:
            await ctx.aclose()

    asyncio.run(main())
"""

__version__ = "1.0.0"

from .core import MetricKind, MetricResult, MetricStatus, MetricsContext
from .fetchers import (
    create_context,
    get_joe_total_supply,
    get_max_supply,
    get_circulating_supply,
    get_circulating_supply_adjusted,
    list_entities,
    get_total_supply,
    get_total_borrow,
    get_supply_apy,
    get_borrow_apy,
    get_supply_rewards_apr,
    get_borrow_rewards_apr,
    list_pools,
    get_pool_weight,
    get_farm_liquidity,
    get_farm_apr,
    get_bonus_apr,
    get_tvl,
    get_24h_volume,
    get_transaction_fees,
    get_pool_apr,
    get_stake_fees,
    get_stake_apr,
    get_stake_apy,
)

__all__ = [
    "__version__",
    "MetricKind",
    "MetricResult",
    "MetricStatus",
    "MetricsContext",
    "create_context",
    "get_joe_total_supply",
    "get_max_supply",
    "get_circulating_supply",
    "get_circulating_supply_adjusted",
    "list_entities",
    "get_total_supply",
    "get_total_borrow",
    "get_supply_apy",
    "get_borrow_apy",
    "get_supply_rewards_apr",
    "get_borrow_rewards_apr",
    "list_pools",
    "get_pool_weight",
    "get_farm_liquidity",
    "get_farm_apr",
    "get_bonus_apr",
    "get_tvl",
    "get_24h_volume",
    "get_transaction_fees",
    "get_pool_apr",
    "get_stake_fees",
    "get_stake_apr",
    "get_stake_apy",
]
