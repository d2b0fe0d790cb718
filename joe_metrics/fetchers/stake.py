"""
Stake Fetcher - xJOE staking fees, APR and APY.

The JoeMaker (the factory's feeTo) converts protocol fees to JOE for xJOE
holders. Hourly converted JOE amounts are kept in a rolling window; the
trailing 24h total is valued at the current JOE price.
"""

from decimal import Decimal

from ..config.settings import CONTRACTS
from ..core.decimal_math import DAYS_PER_YEAR, HUNDRED, WAD, apr_to_apy, div, mul, round_places, scale_down, total
from ..core.plan import MetricPlan, MetricStep
from ..core.registry import normalize_address
from ..core.results import MetricKind, MetricResult
from .abis import ERC20_ABI, JOE_FACTORY_ABI, LOG_CONVERT_EVENT_ABI
from .price import token_decimals, token_price


async def joe_maker(ctx) -> str:
    """Address of the JoeMaker, read once from JoeFactory.feeTo()."""
    factory = normalize_address(CONTRACTS["joe_factory"])

    async def compute():
        return normalize_address(await ctx.chain.call_contract(factory, "feeTo", abi=JOE_FACTORY_ABI))

    return await ctx.cached((factory, "feeTo"), MetricKind.STATIC, compute)


async def converted_joe(ctx) -> Decimal:
    """JOE bought by the JoeMaker over the trailing window, in whole tokens."""
    maker = await joe_maker(ctx)

    async def sample(slot, start_ms, end_ms):
        events = await ctx.events.fetch_events(maker, LOG_CONVERT_EVENT_ABI, start_ms, end_ms)
        return total(div(event.get("amountJOE", 0), WAD) for event in events)

    return await ctx.windows.refresh((maker, MetricKind.STAKE_FEES), sample, ctx.window_interval_ms)


async def stake_fees(ctx) -> Decimal:
    """Trailing 24h staking fees in USD (4 decimals)."""
    amount = await converted_joe(ctx)
    price = await token_price(ctx, CONTRACTS["joe"])
    return round_places(mul(amount, price), 4)


def stake_apr_plan(ctx) -> MetricPlan:
    """
    APR of xJOE in percent.

    APR = (fees / xJoeSupply * 365) / (joeBalance / xJoeSupply * joePrice) * 100
    """
    joe = CONTRACTS["joe"]
    xjoe = CONTRACTS["xjoe"]

    def combine(r):
        xjoe_supply = scale_down(r["xjoe_supply"], r["xjoe_decimals"])
        # JOE and xJOE share 18 decimals
        joe_balance = scale_down(r["joe_balance"], r["xjoe_decimals"])
        numerator = mul(div(r["fees"], xjoe_supply), DAYS_PER_YEAR)
        denominator = mul(div(joe_balance, xjoe_supply), r["joe_price"])
        return round_places(mul(div(numerator, denominator), HUNDRED), 4)

    return MetricPlan("stake_apr", [
        MetricStep("fees", lambda r: stake_fees(ctx)),
        MetricStep("joe_price", lambda r: token_price(ctx, joe)),
        MetricStep("xjoe_supply", lambda r: ctx.chain.call_contract(xjoe, "totalSupply", abi=ERC20_ABI)),
        MetricStep("xjoe_decimals", lambda r: token_decimals(ctx, xjoe)),
        MetricStep("joe_balance", lambda r: ctx.chain.call_contract(joe, "balanceOf", [xjoe], abi=ERC20_ABI)),
        MetricStep("apr", combine, ("fees", "joe_price", "xjoe_supply", "xjoe_decimals", "joe_balance")),
    ])


async def stake_apr(ctx) -> Decimal:
    async def compute():
        return (await stake_apr_plan(ctx).run())["apr"]

    return await ctx.cached(normalize_address(CONTRACTS["xjoe"]), MetricKind.STAKE_APR, compute)


# =============================================================================
# METRICS
# =============================================================================

async def get_stake_fees(ctx) -> MetricResult:
    return MetricResult.ok(await stake_fees(ctx))


async def get_stake_apr(ctx) -> MetricResult:
    return MetricResult.ok(await stake_apr(ctx))


async def get_stake_apy(ctx) -> MetricResult:
    """Daily-compounded APY of the cached stake APR (4 decimals)."""
    apr = await stake_apr(ctx)
    return MetricResult.ok(round_places(apr_to_apy(apr), 4))
