"""
Metric fetchers - async metric functions over a MetricsContext.

Each fetcher module provides metric functions returning MetricResult:
- supply: JOE total / max / circulating supply
- lending: Banker Joe totals, interest APY, rewards APR
- farm: MasterChef pool list, weight, liquidity, APR, bonus APR
- liquidity: pool TVL, 24h volume, fees, fee APR
- stake: xJOE fees, APR, APY

create_context() wires the default collaborators and registry partitions.
"""

from ..config.settings import CONTRACTS
from ..core.context import MetricsContext
from .chain import ChainAdapter
from .events import MoralisEventSource
from .price import PriceOracle, token_price, token_price_avax

from .supply import (
    get_joe_total_supply,
    get_max_supply,
    get_circulating_supply,
    get_circulating_supply_adjusted,
)

from .lending import (
    JoetrollerMarketSource,
    LENDING_PARTITION,
    list_entities,
    get_total_supply,
    get_total_borrow,
    get_supply_apy,
    get_borrow_apy,
    get_supply_rewards_apr,
    get_borrow_rewards_apr,
)

from .farm import (
    FARM_PARTITIONS,
    MasterChefPoolSource,
    list_pools,
    get_pool_weight,
    get_farm_liquidity,
    get_farm_apr,
    get_bonus_apr,
)

from .liquidity import (
    pool_tvl,
    get_tvl,
    get_24h_volume,
    get_transaction_fees,
    get_pool_apr,
)

from .stake import (
    get_stake_fees,
    get_stake_apr,
    get_stake_apy,
)


def create_context(chain=None, prices=None, events=None, clock=None, ttl_config=None, window_config=None) -> MetricsContext:
    """
    Build a MetricsContext with the lending and farm partitions registered.

    Args:
        chain: Contract caller (defaults to ChainAdapter on AVAX_RPC)
        prices: Price collaborator (defaults to PriceOracle over `chain`)
        events: Event source (defaults to MoralisEventSource)
        clock: Millisecond wall clock
        ttl_config: TTL overrides in seconds, by TTL_CONFIG key
        window_config: Rolling window overrides ("slots", "slot_seconds")

    Returns:
        A fresh context; construct one per process
    """
    chain = chain or ChainAdapter()
    prices = prices or PriceOracle(chain)
    events = events or MoralisEventSource()

    ctx = MetricsContext(chain, prices, events, clock=clock, ttl_config=ttl_config, window_config=window_config)
    ctx.registry.register_partition(LENDING_PARTITION, JoetrollerMarketSource(chain, CONTRACTS["joetroller"]))
    ctx.registry.register_partition("farm_v2", MasterChefPoolSource(chain, CONTRACTS["masterchef_v2"], "farm_v2"))
    ctx.registry.register_partition("farm_v3", MasterChefPoolSource(chain, CONTRACTS["masterchef_v3"], "farm_v3"))
    return ctx


__all__ = [
    "create_context",
    # Collaborators
    "ChainAdapter",
    "MoralisEventSource",
    "PriceOracle",
    "token_price",
    "token_price_avax",
    # Supply
    "get_joe_total_supply",
    "get_max_supply",
    "get_circulating_supply",
    "get_circulating_supply_adjusted",
    # Lending
    "JoetrollerMarketSource",
    "LENDING_PARTITION",
    "list_entities",
    "get_total_supply",
    "get_total_borrow",
    "get_supply_apy",
    "get_borrow_apy",
    "get_supply_rewards_apr",
    "get_borrow_rewards_apr",
    # Farm
    "FARM_PARTITIONS",
    "MasterChefPoolSource",
    "list_pools",
    "get_pool_weight",
    "get_farm_liquidity",
    "get_farm_apr",
    "get_bonus_apr",
    # Liquidity
    "pool_tvl",
    "get_tvl",
    "get_24h_volume",
    "get_transaction_fees",
    "get_pool_apr",
    # Stake
    "get_stake_fees",
    "get_stake_apr",
    "get_stake_apy",
]
