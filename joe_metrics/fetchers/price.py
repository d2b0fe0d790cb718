"""
Price resolution from AMM pair reserves.

Token prices are derived from the token/WAVAX pair (price in AVAX) and the
WAVAX/USDC pair (AVAX in USD). Results are 18-decimal scaled integer strings,
the format the metric engine expects from any price collaborator.
"""

import asyncio
from decimal import ROUND_DOWN
from typing import Dict, Tuple

from ..config.settings import CONTRACTS
from ..core.decimal_math import WAD, div, mul, scale_down, to_decimal
from ..core.registry import normalize_address
from ..core.results import MetricKind, RemoteCallError
from .abis import ERC20_ABI, JOE_FACTORY_ABI, JOE_PAIR_ABI

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class PriceOracle:
    """
    Spot prices read from Trader Joe pairs.

    Pair addresses, pair token ordering and token decimals never change, so
    they are memoized for the process lifetime.
    """

    def __init__(self, chain, factory: str = CONTRACTS["joe_factory"],
                 wavax: str = CONTRACTS["wavax"], usdc: str = CONTRACTS["usdc"]):
        self.chain = chain
        self.factory = factory
        self.wavax = normalize_address(wavax)
        self.usdc = normalize_address(usdc)
        self._pairs: Dict[Tuple[str, str], Tuple[str, str]] = {}
        self._decimals: Dict[str, int] = {}

    async def _token_decimals(self, token: str) -> int:
        if token not in self._decimals:
            self._decimals[token] = int(await self.chain.call_contract(token, "decimals", abi=ERC20_ABI))
        return self._decimals[token]

    async def _pair(self, token: str, quote: str) -> Tuple[str, str]:
        """Return (pair address, pair token0) for token/quote."""
        key = (token, quote)
        if key not in self._pairs:
            pair = await self.chain.call_contract(self.factory, "getPair", [token, quote], abi=JOE_FACTORY_ABI)
            if int(pair, 16) == 0:
                raise RemoteCallError(self.factory, "getPair", ValueError(f"No pair for {token}/{quote}"))
            token0 = await self.chain.call_contract(pair, "token0", abi=JOE_PAIR_ABI)
            self._pairs[key] = (normalize_address(pair), normalize_address(token0))
        return self._pairs[key]

    async def _quote(self, token: str, quote: str):
        """Price of one `token` expressed in `quote`, from pair reserves."""
        (pair, token0), token_decimals, quote_decimals = await asyncio.gather(
            self._pair(token, quote),
            self._token_decimals(token),
            self._token_decimals(quote),
        )
        reserve0, reserve1, _ = await self.chain.call_contract(pair, "getReserves", abi=JOE_PAIR_ABI)
        if token0 == token:
            token_reserve, quote_reserve = reserve0, reserve1
        else:
            token_reserve, quote_reserve = reserve1, reserve0
        return div(scale_down(quote_reserve, quote_decimals), scale_down(token_reserve, token_decimals))

    async def derived_price(self, token: str):
        """Price of `token` in AVAX."""
        token = normalize_address(token)
        if token == self.wavax:
            return to_decimal(1)
        return await self._quote(token, self.wavax)

    async def avax_price(self):
        """Price of AVAX in USD."""
        return await self._quote(self.wavax, self.usdc)

    async def get_price(self, token: str, inverse: bool = False) -> str:
        """
        Price of `token` as an 18-decimal scaled integer string.

        Args:
            token: Token address
            inverse: Quote in AVAX instead of USD

        Returns:
            e.g. "500000000000000000" for $0.50
        """
        token = normalize_address(token)
        if token == self.usdc and not inverse:
            return str(WAD)
        if inverse:
            price = await self.derived_price(token)
        else:
            derived, avax_usd = await asyncio.gather(self.derived_price(token), self.avax_price())
            price = mul(derived, avax_usd)
        return str(mul(price, WAD).to_integral_value(rounding=ROUND_DOWN))


# =============================================================================
# CACHED PRICE LOOKUPS
# =============================================================================

async def token_decimals(ctx, token: str) -> int:
    """ERC20 decimals of `token`, cached as static data."""
    token = normalize_address(token)

    async def compute():
        return int(await ctx.chain.call_contract(token, "decimals", abi=ERC20_ABI))

    return await ctx.cached(token, MetricKind.TOKEN_DECIMALS, compute)


async def token_price(ctx, token: str):
    """USD price of `token` as a Decimal, cached with the price TTL."""
    token = normalize_address(token)

    async def compute():
        raw = await ctx.prices.get_price(token, False)
        return div(to_decimal(raw), WAD)

    return await ctx.cached(token, MetricKind.PRICE, compute)


async def token_price_avax(ctx, token: str):
    """AVAX price of `token` as a Decimal, cached with the derived price TTL."""
    token = normalize_address(token)

    async def compute():
        raw = await ctx.prices.get_price(token, True)
        return div(to_decimal(raw), WAD)

    return await ctx.cached(token, MetricKind.DERIVED_PRICE, compute)
