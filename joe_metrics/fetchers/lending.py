"""
Lending Fetcher - Banker Joe market totals, interest rates and reward APRs.

Fetches lending metrics including:
- Market list from the Joetroller
- Total supply / total borrow across all markets (USD)
- Supply / borrow APY (interest compounded daily)
- Supply / borrow rewards APR (JOE and AVAX emissions)
"""

import asyncio
from decimal import Decimal
from typing import Any, Dict, List

from ..config.settings import CONTRACTS, LENDING_REWARD_TYPES, NATIVE_LENDING_MARKETS
from ..core.decimal_math import (
    HUNDRED,
    SECONDS_PER_YEAR,
    WAD,
    apr_to_apy,
    div,
    mul,
    pow_int,
    round_places,
    scale_down,
    total,
)
from ..core.plan import MetricPlan, MetricStep
from ..core.registry import Entity, PartitionSource, normalize_address
from ..core.results import MetricKind, MetricResult
from .abis import ERC20_ABI, JOETROLLER_ABI, JTOKEN_ABI, LENDING_ORACLE_ABI, REWARD_DISTRIBUTOR_ABI
from .price import token_price


LENDING_PARTITION = "lending"

# Rate methods and reward speed methods per market side
SIDES = {
    "supply": {"rate": "supplyRatePerSecond", "speed": "rewardSupplySpeeds", "usd": "supply_usd"},
    "borrow": {"rate": "borrowRatePerSecond", "speed": "rewardBorrowSpeeds", "usd": "borrow_usd"},
}


class JoetrollerMarketSource(PartitionSource):
    """
    Market list of the Joetroller.

    getAllMarkets() returns the whole list, so the length call keeps a
    snapshot that fetch_record() reads from.
    """

    def __init__(self, chain, joetroller: str = CONTRACTS["joetroller"], wavax: str = CONTRACTS["wavax"]):
        self.chain = chain
        self.joetroller = joetroller
        self.wavax = normalize_address(wavax)
        self._markets: List[str] = []

    async def fetch_length(self) -> int:
        self._markets = list(await self.chain.call_contract(self.joetroller, "getAllMarkets", abi=JOETROLLER_ABI))
        return len(self._markets)

    async def fetch_record(self, index: int) -> Dict[str, Any]:
        market = self._markets[index]
        if normalize_address(market) in NATIVE_LENDING_MARKETS:
            return {"address": market, "underlying": self.wavax, "underlying_decimals": 18, "native": True}

        underlying = await self.chain.call_contract(market, "underlying", abi=JTOKEN_ABI)
        decimals = await self.chain.call_contract(underlying, "decimals", abi=ERC20_ABI)
        return {
            "address": market,
            "underlying": normalize_address(underlying),
            "underlying_decimals": int(decimals),
            "native": False,
        }


async def find_market(ctx, market: str):
    await ctx.registry.discover(LENDING_PARTITION)
    return ctx.registry.get(LENDING_PARTITION, market)


async def joetroller_address(ctx, method: str) -> str:
    """Oracle / reward distributor address registered on the Joetroller."""
    source = ctx.registry.partition(LENDING_PARTITION).source
    joetroller = normalize_address(source.joetroller)

    async def compute():
        return normalize_address(await ctx.chain.call_contract(joetroller, method, abi=JOETROLLER_ABI))

    return await ctx.cached((joetroller, method), MetricKind.STATIC, compute)


async def market_snapshot(ctx, entity: Entity) -> Dict[str, Decimal]:
    """
    Supply and borrow of one market in USD.

    Returns:
        {"price": underlying USD price, "supply_usd": ..., "borrow_usd": ...}
    """
    market = entity.address
    decimals = entity.static["underlying_decimals"]

    async def compute():
        oracle = await joetroller_address(ctx, "oracle")
        total_supply, exchange_rate, total_borrows, raw_price = await asyncio.gather(
            ctx.chain.call_contract(market, "totalSupply", abi=JTOKEN_ABI),
            ctx.chain.call_contract(market, "exchangeRateStored", abi=JTOKEN_ABI),
            ctx.chain.call_contract(market, "totalBorrows", abi=JTOKEN_ABI),
            ctx.chain.call_contract(oracle, "getUnderlyingPrice", [market], abi=LENDING_ORACLE_ABI),
        )
        # Oracle prices carry 36 - underlying decimals
        price = div(raw_price, pow_int(10, 36 - decimals))
        supplied = scale_down(div(mul(total_supply, exchange_rate), WAD), decimals)
        borrowed = scale_down(total_borrows, decimals)
        return {
            "price": price,
            "supply_usd": mul(supplied, price),
            "borrow_usd": mul(borrowed, price),
        }

    return await ctx.cached(market, MetricKind.LENDING_MARKET, compute)


async def lending_totals(ctx) -> Dict[str, Decimal]:
    """Supply and borrow in USD summed over every known market."""
    await ctx.registry.discover(LENDING_PARTITION)
    joetroller = normalize_address(ctx.registry.partition(LENDING_PARTITION).source.joetroller)

    async def compute():
        snapshots = await asyncio.gather(*(
            market_snapshot(ctx, entity) for entity in ctx.registry.entities(LENDING_PARTITION)
        ))
        return {
            "supply": total(snapshot["supply_usd"] for snapshot in snapshots),
            "borrow": total(snapshot["borrow_usd"] for snapshot in snapshots),
        }

    return await ctx.cached(joetroller, MetricKind.LENDING_TOTALS, compute)


def rewards_apr_plan(ctx, entity: Entity, side: str) -> MetricPlan:
    """Sum over reward types of yearly emissions in USD, over the market side in USD."""
    speed_method = SIDES[side]["speed"]
    usd_field = SIDES[side]["usd"]
    reward_types = sorted(LENDING_REWARD_TYPES)

    def speed(reward_type):
        async def fetch(r):
            return await ctx.chain.call_contract(
                r["distributor"], speed_method, [reward_type, entity.address], abi=REWARD_DISTRIBUTOR_ABI
            )
        return fetch

    def price(reward_type):
        token = CONTRACTS[LENDING_REWARD_TYPES[reward_type]]
        return lambda r: token_price(ctx, token)

    def combine(r):
        yearly_usd = total(
            mul(mul(div(r[f"speed_{t}"], WAD), SECONDS_PER_YEAR), r[f"price_{t}"]) for t in reward_types
        )
        return round_places(mul(div(yearly_usd, r["snapshot"][usd_field]), HUNDRED), 2)

    steps = [
        MetricStep("distributor", lambda r: joetroller_address(ctx, "rewardDistributor")),
        MetricStep("snapshot", lambda r: market_snapshot(ctx, entity)),
    ]
    for reward_type in reward_types:
        steps.append(MetricStep(f"speed_{reward_type}", speed(reward_type), ("distributor",)))
        steps.append(MetricStep(f"price_{reward_type}", price(reward_type)))
    steps.append(MetricStep(
        "apr",
        combine,
        ("snapshot",) + tuple(f"speed_{t}" for t in reward_types) + tuple(f"price_{t}" for t in reward_types),
    ))
    return MetricPlan(f"{side}_rewards_apr", steps)


async def _rate_apy(ctx, market: str, side: str, kind: MetricKind) -> MetricResult:
    entity = await find_market(ctx, market)
    if entity is None:
        return MetricResult.not_tracked(market, "Lending market does not exist for that address")

    async def compute():
        rate = await ctx.chain.call_contract(entity.address, SIDES[side]["rate"], abi=JTOKEN_ABI)
        percent_apr = mul(div(mul(rate, SECONDS_PER_YEAR), WAD), HUNDRED)
        return round_places(apr_to_apy(percent_apr), 2)

    return MetricResult.ok(await ctx.cached(entity.address, kind, compute))


async def _rewards_apr(ctx, market: str, side: str, kind: MetricKind) -> MetricResult:
    entity = await find_market(ctx, market)
    if entity is None:
        return MetricResult.not_tracked(market, "Lending market does not exist for that address")

    async def compute():
        return (await rewards_apr_plan(ctx, entity, side).run())["apr"]

    return MetricResult.ok(await ctx.cached(entity.address, kind, compute))


# =============================================================================
# METRICS
# =============================================================================

async def list_entities(ctx) -> MetricResult:
    """Addresses of all Banker Joe markets, in Joetroller order."""
    await ctx.registry.discover(LENDING_PARTITION)
    return MetricResult.ok([entity.address for entity in ctx.registry.entities(LENDING_PARTITION)])


async def get_total_supply(ctx) -> MetricResult:
    """Total USD supplied across Banker Joe (2 decimals)."""
    totals = await lending_totals(ctx)
    return MetricResult.ok(round_places(totals["supply"], 2))


async def get_total_borrow(ctx) -> MetricResult:
    """Total USD borrowed across Banker Joe (2 decimals)."""
    totals = await lending_totals(ctx)
    return MetricResult.ok(round_places(totals["borrow"], 2))


async def get_supply_apy(ctx, market: str) -> MetricResult:
    """Supply interest APY of a market in percent (2 decimals)."""
    return await _rate_apy(ctx, normalize_address(market), "supply", MetricKind.SUPPLY_APY)


async def get_borrow_apy(ctx, market: str) -> MetricResult:
    """Borrow interest APY of a market in percent (2 decimals)."""
    return await _rate_apy(ctx, normalize_address(market), "borrow", MetricKind.BORROW_APY)


async def get_supply_rewards_apr(ctx, market: str) -> MetricResult:
    """JOE + AVAX rewards APR for suppliers of a market (2 decimals)."""
    return await _rewards_apr(ctx, normalize_address(market), "supply", MetricKind.SUPPLY_REWARDS_APR)


async def get_borrow_rewards_apr(ctx, market: str) -> MetricResult:
    """JOE + AVAX rewards APR for borrowers of a market (2 decimals)."""
    return await _rewards_apr(ctx, normalize_address(market), "borrow", MetricKind.BORROW_REWARDS_APR)
