"""
Pytest configuration and fixtures for the Joe metrics engine.

Every test gets a freshly constructed MetricsContext wired to in-memory fakes:
- FakeChain: scripted contract responses, records every call
- FakePrices: fixed USD prices, 18-decimal strings like the real oracle
- FakeEvents: scripted event lists per (address, event name)
- FakeClock: manually advanced millisecond clock
"""

import asyncio
from decimal import Decimal
from typing import Any, Callable, Dict, List, Tuple

import pytest

from joe_metrics.config.settings import CONTRACTS
from joe_metrics.core.decimal_math import WAD
from joe_metrics.core.results import ContractRevertError, RemoteCallError
from joe_metrics.fetchers import create_context


# =============================================================================
# ADDRESSES
# =============================================================================

JOE = CONTRACTS["joe"].lower()
XJOE = CONTRACTS["xjoe"].lower()
WAVAX = CONTRACTS["wavax"].lower()
USDC = CONTRACTS["usdc"].lower()
BURN = CONTRACTS["burn"].lower()
FACTORY = CONTRACTS["joe_factory"].lower()
JOETROLLER = CONTRACTS["joetroller"].lower()
MASTERCHEF_V2 = CONTRACTS["masterchef_v2"].lower()
MASTERCHEF_V3 = CONTRACTS["masterchef_v3"].lower()

UNKNOWN = "0x" + "9" * 40

START_MS = 1_700_000_000_000
HOUR_MS = 3_600_000


def _normalize_arg(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeChain:
    """
    Scripted contract caller.

    Responses are keyed by (address, method, args). A response may be a value,
    a zero-argument callable, or an exception instance. RemoteCallErrors are
    raised as given, other exceptions are wrapped in a RemoteCallError.
    Unscripted calls fail like a revert (ContractRevertError).
    """

    def __init__(self):
        self.responses: Dict[Tuple, Any] = {}
        self.calls: List[Tuple] = []

    @staticmethod
    def _key(address: str, method: str, args=()) -> Tuple:
        return (address.lower(), method, tuple(_normalize_arg(arg) for arg in args))

    def set(self, address: str, method: str, value: Any, args=()) -> None:
        self.responses[self._key(address, method, args)] = value

    def count(self, address: str, method: str, args=None) -> int:
        if args is not None:
            key = self._key(address, method, args)
            return sum(1 for call in self.calls if call == key)
        return sum(1 for call in self.calls if call[:2] == (address.lower(), method))

    async def call_contract(self, address, method, args=(), abi=None):
        key = self._key(address, method, args)
        self.calls.append(key)
        await asyncio.sleep(0)
        if key not in self.responses:
            raise ContractRevertError(address, method, KeyError("execution reverted"))
        value = self.responses[key]
        if isinstance(value, RemoteCallError):
            raise value
        if isinstance(value, Exception):
            raise RemoteCallError(address, method, value)
        if callable(value):
            return value()
        return value


class FakePrices:
    """USD prices per token; AVAX quotes derived from the WAVAX price."""

    def __init__(self, usd: Dict[str, str]):
        self.usd = {token.lower(): Decimal(price) for token, price in usd.items()}
        self.calls: List[Tuple[str, bool]] = []

    async def get_price(self, token: str, inverse: bool = False) -> str:
        token = token.lower()
        self.calls.append((token, inverse))
        await asyncio.sleep(0)
        if token not in self.usd:
            raise RemoteCallError(token, "getPrice", KeyError("no pair"))
        price = self.usd[token]
        if inverse:
            price = price / self.usd[WAVAX]
        return str(int(price * WAD))


class FakeEvents:
    """Event lists per (address, event name); `fn(start_ms, end_ms)` or a constant list."""

    def __init__(self):
        self.handlers: Dict[Tuple[str, str], Any] = {}
        self.calls: List[Tuple[str, str, int, int]] = []

    def set(self, address: str, event_name: str, events) -> None:
        self.handlers[(address.lower(), event_name)] = events

    async def fetch_events(self, address, event_abi, start_ms, end_ms):
        key = (address.lower(), event_abi["name"])
        self.calls.append((key[0], key[1], start_ms, end_ms))
        await asyncio.sleep(0)
        if key not in self.handlers:
            raise RemoteCallError(address, f"events:{event_abi['name']}", KeyError("no events"))
        events = self.handlers[key]
        if isinstance(events, Exception):
            raise RemoteCallError(address, f"events:{event_abi['name']}", events)
        if callable(events):
            return events(start_ms, end_ms)
        return list(events)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def run(coro):
    """Drive a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def prices() -> FakePrices:
    """JOE at $0.50, AVAX at $20, USDC at $1."""
    return FakePrices({JOE: "0.5", WAVAX: "20", USDC: "1"})


@pytest.fixture
def events() -> FakeEvents:
    return FakeEvents()


@pytest.fixture
def ctx(chain, prices, events, clock):
    """Fresh metrics context with lending and farm partitions registered."""
    return create_context(chain=chain, prices=prices, events=events, clock=clock)


@pytest.fixture
def pair_factory(chain) -> Callable[..., str]:
    """
    Script an AMM pair on the fake chain.

    Usage:
        def test_something(pair_factory):
            pair = pair_factory("0x" + "1" * 40, JOE, WAVAX, 1000 * 10**18, 25 * 10**18)
    """
    def _create_pair(address, token0, token1, balance0, balance1,
                     decimals0=18, decimals1=18, lp_supply=10**18):
        chain.set(address, "token0", token0)
        chain.set(address, "token1", token1)
        chain.set(token0, "balanceOf", balance0, args=[address])
        chain.set(token1, "balanceOf", balance1, args=[address])
        chain.set(token0, "decimals", decimals0)
        chain.set(token1, "decimals", decimals1)
        chain.set(address, "totalSupply", lp_supply)
        return address.lower()

    return _create_pair
