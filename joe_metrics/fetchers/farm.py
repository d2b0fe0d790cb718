"""
Farm Fetcher - MasterChef V2/V3 pool weight, liquidity and reward APR.

Fetches farm metrics including:
- Pool list per MasterChef (lp token + pid)
- Pool weight (share of allocation points)
- Farm liquidity (USD value of the LP tokens staked in the chef)
- JOE reward APR (V2 farms double the denominator)
- Bonus APR paid by a pool's secondary rewarder
"""

from decimal import Decimal
from typing import Any, Dict, List

from ..config.settings import CONTRACTS, FARM_DENOMINATOR_MULTIPLIER
from ..core.decimal_math import HUNDRED, SECONDS_PER_YEAR, WAD, ZERO, div, mul, round_places, scale_down
from ..core.plan import MetricPlan, MetricStep
from ..core.registry import Entity, PartitionSource, normalize_address
from ..core.results import MetricKind, MetricResult, NotLPTokenError
from .abis import JOE_PAIR_ABI, MASTERCHEF_V2_ABI, MASTERCHEF_V3_ABI, POOL_INFO_FIELDS, REWARDER_ABI
from .liquidity import pool_tvl
from .price import ZERO_ADDRESS, token_decimals, token_price


FARM_PARTITIONS = ("farm_v2", "farm_v3")

CHEF_ABIS = {
    "farm_v2": MASTERCHEF_V2_ABI,
    "farm_v3": MASTERCHEF_V3_ABI,
}


class MasterChefPoolSource(PartitionSource):
    """poolLength() / poolInfo(pid) of one MasterChef deployment."""

    def __init__(self, chain, chef: str, version: str):
        if version not in CHEF_ABIS:
            raise ValueError(f"Unknown MasterChef version: {version}")
        self.chain = chain
        self.chef = chef
        self.version = version
        self.abi = CHEF_ABIS[version]
        self.fields = POOL_INFO_FIELDS[version]

    async def fetch_length(self) -> int:
        return int(await self.chain.call_contract(self.chef, "poolLength", abi=self.abi))

    async def fetch_pool_info(self, pid: int):
        return await self.chain.call_contract(self.chef, "poolInfo", [pid], abi=self.abi)

    async def fetch_record(self, index: int) -> Dict[str, Any]:
        info = await self.fetch_pool_info(index)
        return {
            "address": info[self.fields["lp_token"]],
            "chef": self.chef,
            "version": self.version,
            "alloc_point": int(info[self.fields["alloc_point"]]),
            "rewarder": normalize_address(info[self.fields["rewarder"]]),
        }


async def find_farm(ctx, lp_token: str):
    """Discover both MasterChef lists, then look up `lp_token` (V2 first)."""
    await ctx.registry.discover_all(FARM_PARTITIONS)
    return ctx.registry.find(lp_token, FARM_PARTITIONS)


def _source(ctx, entity: Entity) -> MasterChefPoolSource:
    return ctx.registry.partition(entity.partition).source


def _alloc_steps(ctx, entity: Entity) -> List[MetricStep]:
    """Current (not discovery-time) allocation points of a pool and its chef."""
    source = _source(ctx, entity)

    async def alloc_point(_):
        info = await source.fetch_pool_info(entity.pid)
        return int(info[source.fields["alloc_point"]])

    return [
        MetricStep("alloc_point", alloc_point),
        MetricStep("total_alloc_point", lambda r: ctx.chain.call_contract(source.chef, "totalAllocPoint", abi=source.abi)),
    ]


async def farm_liquidity(ctx, entity: Entity) -> Decimal:
    """
    USD value of the LP tokens held by the pool's MasterChef.

    liquidity = TVL * chefBalance / lpTotalSupply (LP decimals cancel out)
    """

    async def compute():
        lp_token = entity.address
        chef = entity.static["chef"]
        plan = MetricPlan("farm_liquidity", [
            MetricStep("tvl", lambda r: pool_tvl(ctx, lp_token)),
            MetricStep("chef_balance", lambda r: ctx.chain.call_contract(lp_token, "balanceOf", [chef], abi=JOE_PAIR_ABI)),
            MetricStep("lp_supply", lambda r: ctx.chain.call_contract(lp_token, "totalSupply", abi=JOE_PAIR_ABI)),
            MetricStep(
                "liquidity",
                lambda r: div(mul(r["tvl"], r["chef_balance"]), r["lp_supply"]),
                ("tvl", "chef_balance", "lp_supply"),
            ),
        ])
        return (await plan.run())["liquidity"]

    return await ctx.cached(entity.address, MetricKind.FARM_LIQUIDITY, compute)


def farm_apr_plan(ctx, entity: Entity) -> MetricPlan:
    """Reward value per year over staked liquidity, V2 denominators doubled."""
    source = _source(ctx, entity)
    multiplier = FARM_DENOMINATOR_MULTIPLIER[entity.partition]

    def combine(r):
        share = div(r["alloc_point"], r["total_alloc_point"])
        joe_per_sec = div(r["joe_per_sec"], WAD)
        numerator = mul(mul(mul(share, joe_per_sec), SECONDS_PER_YEAR), r["joe_price"])
        denominator = mul(r["liquidity"], multiplier)
        return round_places(mul(div(numerator, denominator), HUNDRED), 2)

    return MetricPlan("farm_apr", _alloc_steps(ctx, entity) + [
        MetricStep("joe_per_sec", lambda r: ctx.chain.call_contract(source.chef, "joePerSec", abi=source.abi)),
        MetricStep("joe_price", lambda r: token_price(ctx, CONTRACTS["joe"])),
        MetricStep("liquidity", lambda r: farm_liquidity(ctx, entity)),
        MetricStep("apr", combine, ("alloc_point", "total_alloc_point", "joe_per_sec", "joe_price", "liquidity")),
    ])


def bonus_apr_plan(ctx, entity: Entity) -> MetricPlan:
    """Rewarder emissions per year in USD over staked liquidity."""
    rewarder = entity.static["rewarder"]

    async def reward_token(_):
        return normalize_address(await ctx.chain.call_contract(rewarder, "rewardToken", abi=REWARDER_ABI))

    def combine(r):
        per_second = scale_down(r["token_per_sec"], r["reward_decimals"])
        numerator = mul(mul(per_second, SECONDS_PER_YEAR), r["reward_price"])
        return round_places(mul(div(numerator, r["liquidity"]), HUNDRED), 2)

    return MetricPlan("bonus_apr", [
        MetricStep("reward_token", reward_token),
        MetricStep("token_per_sec", lambda r: ctx.chain.call_contract(rewarder, "tokenPerSec", abi=REWARDER_ABI)),
        MetricStep("liquidity", lambda r: farm_liquidity(ctx, entity)),
        MetricStep("reward_decimals", lambda r: token_decimals(ctx, r["reward_token"]), ("reward_token",)),
        MetricStep("reward_price", lambda r: token_price(ctx, r["reward_token"]), ("reward_token",)),
        MetricStep("bonus_apr", combine, ("token_per_sec", "liquidity", "reward_decimals", "reward_price")),
    ])


# =============================================================================
# METRICS
# =============================================================================

async def list_pools(ctx) -> MetricResult:
    """
    List every farm pool by MasterChef.

    Returns:
        MetricResult with {chef_address: [{"token": lp_token, "pid": pid}, ...]}
    """
    await ctx.registry.discover_all(FARM_PARTITIONS)
    pools = {}
    for name in FARM_PARTITIONS:
        chef = ctx.registry.partition(name).source.chef
        pools[chef] = [{"token": entity.address, "pid": entity.pid} for entity in ctx.registry.entities(name)]
    return MetricResult.ok(pools)


async def get_pool_weight(ctx, lp_token: str) -> MetricResult:
    """Share of the chef's allocation points assigned to the pool, in percent."""
    lp_token = normalize_address(lp_token)
    entity = await find_farm(ctx, lp_token)
    if entity is None:
        return MetricResult.not_tracked(lp_token, "Pool is not an active yield farm")

    async def compute():
        results = await MetricPlan("pool_weight", _alloc_steps(ctx, entity)).run()
        return round_places(mul(div(results["alloc_point"], results["total_alloc_point"]), HUNDRED), 2)

    return MetricResult.ok(await ctx.cached(entity.address, MetricKind.POOL_WEIGHT, compute))


async def get_farm_liquidity(ctx, lp_token: str) -> MetricResult:
    """USD value staked in the farm (2 decimals)."""
    lp_token = normalize_address(lp_token)
    entity = await find_farm(ctx, lp_token)
    if entity is None:
        return MetricResult.not_tracked(lp_token, "Pool is not an active yield farm")
    try:
        return MetricResult.ok(round_places(await farm_liquidity(ctx, entity), 2))
    except NotLPTokenError:
        return MetricResult.not_lp(lp_token)


async def get_farm_apr(ctx, lp_token: str) -> MetricResult:
    """JOE reward APR of a farm in percent (2 decimals)."""
    lp_token = normalize_address(lp_token)
    entity = await find_farm(ctx, lp_token)
    if entity is None:
        return MetricResult.not_tracked(lp_token, "Pool is not an active yield farm")

    async def compute():
        return (await farm_apr_plan(ctx, entity).run())["apr"]

    try:
        return MetricResult.ok(await ctx.cached(entity.address, MetricKind.FARM_APR, compute))
    except NotLPTokenError:
        return MetricResult.not_lp(lp_token)


async def get_bonus_apr(ctx, lp_token: str) -> MetricResult:
    """Secondary rewarder APR in percent (2 decimals); 0 for pools without a rewarder."""
    lp_token = normalize_address(lp_token)
    entity = await find_farm(ctx, lp_token)
    if entity is None:
        return MetricResult.not_tracked(lp_token, "Pool is not an active yield farm")
    if entity.static["rewarder"] == ZERO_ADDRESS:
        return MetricResult.ok(round_places(ZERO, 2))

    async def compute():
        return (await bonus_apr_plan(ctx, entity).run())["bonus_apr"]

    try:
        return MetricResult.ok(await ctx.cached(entity.address, MetricKind.BONUS_APR, compute))
    except NotLPTokenError:
        return MetricResult.not_lp(lp_token)
