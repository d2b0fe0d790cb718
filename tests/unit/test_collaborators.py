"""
Unit tests for the external collaborators: chain adapter, event source,
price oracle and the metrics context.

web3 and aiohttp objects are replaced with unittest.mock doubles.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from joe_metrics.core.context import MetricsContext
from joe_metrics.core.results import ContractRevertError, MetricKind, RemoteCallError
from joe_metrics.fetchers.abis import LOG_CONVERT_EVENT_ABI, SWAP_EVENT_ABI
from joe_metrics.fetchers.chain import ChainAdapter
from joe_metrics.fetchers.events import MoralisEventSource, event_topic
from joe_metrics.fetchers.price import PriceOracle
from conftest import FACTORY, JOE, USDC, WAVAX, FakeChain, run

CONTRACT = "0x" + "1" * 40


@pytest.fixture
def mock_w3():
    """AsyncWeb3 double whose contract functions resolve to 42."""
    mock = MagicMock()
    contract = MagicMock()
    contract.functions.totalSupply.return_value.call = AsyncMock(return_value=42)
    mock.eth.contract.return_value = contract
    return mock


class TestChainAdapter:
    """Tests for ChainAdapter.call_contract."""

    @pytest.mark.unit
    def test_returns_decoded_value(self, mock_w3):
        adapter = ChainAdapter(w3=mock_w3)
        assert run(adapter.call_contract(CONTRACT, "totalSupply")) == 42

    @pytest.mark.unit
    def test_contract_objects_are_cached(self, mock_w3):
        adapter = ChainAdapter(w3=mock_w3)
        run(adapter.call_contract(CONTRACT, "totalSupply"))
        run(adapter.call_contract(CONTRACT.upper().replace("0X", "0x"), "totalSupply"))
        assert mock_w3.eth.contract.call_count == 1

    @pytest.mark.unit
    def test_failures_become_remote_call_errors(self, mock_w3):
        contract = mock_w3.eth.contract.return_value
        contract.functions.totalSupply.return_value.call = AsyncMock(side_effect=TimeoutError("slow node"))
        adapter = ChainAdapter(w3=mock_w3)

        with pytest.raises(RemoteCallError) as exc_info:
            run(adapter.call_contract(CONTRACT, "totalSupply"))
        assert exc_info.value.method == "totalSupply"
        assert exc_info.value.status_code == 502
        assert isinstance(exc_info.value.cause, TimeoutError)
        assert not isinstance(exc_info.value, ContractRevertError)

    @pytest.mark.unit
    @pytest.mark.parametrize("error", [ContractLogicError("execution reverted"), BadFunctionCallOutput("no code")])
    def test_reverts_are_tagged(self, mock_w3, error):
        contract = mock_w3.eth.contract.return_value
        contract.functions.totalSupply.return_value.call = AsyncMock(side_effect=error)
        adapter = ChainAdapter(w3=mock_w3)

        with pytest.raises(ContractRevertError) as exc_info:
            run(adapter.call_contract(CONTRACT, "totalSupply"))
        assert exc_info.value.status_code == 502
        assert exc_info.value.cause is error


def mock_session(*payloads, status=200):
    """aiohttp session double returning `payloads` from successive POSTs."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(side_effect=list(payloads))
    response.text = AsyncMock(return_value="upstream error")

    session = MagicMock()
    session.closed = False
    session.post.return_value.__aenter__.return_value = response
    return session


class TestMoralisEventSource:
    """Tests for event queries and pagination."""

    @pytest.mark.unit
    def test_log_convert_topic(self):
        assert event_topic(LOG_CONVERT_EVENT_ABI) == "0xd06b1d7ed79b664d17472c6f6997b929f1abe463ccccb4e5b6a0038f2f730c15"

    @pytest.mark.unit
    def test_follows_cursor(self):
        session = mock_session(
            {"result": [{"data": {"amountJOE": "1"}}], "cursor": "next"},
            {"result": [{"data": {"amountJOE": "2"}}], "cursor": None},
        )
        source = MoralisEventSource(api_key="key", session=session)

        events = run(source.fetch_events(CONTRACT, LOG_CONVERT_EVENT_ABI, 0, 3_600_000))

        assert events == [{"amountJOE": "1"}, {"amountJOE": "2"}]
        assert session.post.call_count == 2
        url = session.post.call_args_list[0].args[0]
        assert url.endswith(f"/{CONTRACT}/events")
        params = session.post.call_args_list[1].kwargs["params"]
        assert params["cursor"] == "next"
        assert params["chain"] == "avalanche"
        assert params["topic"] == event_topic(LOG_CONVERT_EVENT_ABI)

    @pytest.mark.unit
    def test_api_key_sent_on_borrowed_session(self):
        session = mock_session({"result": [], "cursor": None})
        source = MoralisEventSource(api_key="secret", session=session)

        run(source.fetch_events(CONTRACT, SWAP_EVENT_ABI, 0, 1))

        headers = session.post.call_args.kwargs["headers"]
        assert headers["X-API-Key"] == "secret"

    @pytest.mark.unit
    def test_http_error_raises(self):
        source = MoralisEventSource(api_key="key", session=mock_session({}, status=500))
        with pytest.raises(RemoteCallError) as exc_info:
            run(source.fetch_events(CONTRACT, SWAP_EVENT_ABI, 0, 1))
        assert exc_info.value.method == "events:Swap"

    @pytest.mark.unit
    def test_borrowed_session_is_not_closed(self):
        session = mock_session()
        session.close = AsyncMock()
        run(MoralisEventSource(session=session).aclose())
        session.close.assert_not_called()


@pytest.fixture
def oracle_chain():
    """JOE/WAVAX pair at 0.025 AVAX and WAVAX/USDC pair at $20."""
    chain = FakeChain()
    joe_pair = "0x" + "3" * 40
    avax_pair = "0x" + "4" * 40
    chain.set(FACTORY, "getPair", joe_pair, args=[JOE, WAVAX])
    chain.set(FACTORY, "getPair", avax_pair, args=[WAVAX, USDC])
    chain.set(joe_pair, "token0", WAVAX)
    chain.set(joe_pair, "getReserves", (25 * 10**18, 1000 * 10**18, 0))
    chain.set(avax_pair, "token0", WAVAX)
    chain.set(avax_pair, "getReserves", (100 * 10**18, 2000 * 10**6, 0))
    chain.set(JOE, "decimals", 18)
    chain.set(WAVAX, "decimals", 18)
    chain.set(USDC, "decimals", 6)
    return chain


class TestPriceOracle:
    """Tests for prices derived from pair reserves."""

    @pytest.mark.unit
    def test_usd_price(self, oracle_chain):
        oracle = PriceOracle(oracle_chain)
        assert run(oracle.get_price(JOE)) == "500000000000000000"

    @pytest.mark.unit
    def test_avax_price(self, oracle_chain):
        oracle = PriceOracle(oracle_chain)
        assert run(oracle.get_price(JOE, inverse=True)) == "25000000000000000"
        assert run(oracle.get_price(WAVAX, inverse=True)) == str(10**18)

    @pytest.mark.unit
    def test_usdc_is_one_dollar(self, oracle_chain):
        assert run(PriceOracle(oracle_chain).get_price(USDC)) == str(10**18)

    @pytest.mark.unit
    def test_pairs_are_memoized(self, oracle_chain):
        oracle = PriceOracle(oracle_chain)
        run(oracle.get_price(JOE))
        run(oracle.get_price(JOE))
        assert oracle_chain.count(FACTORY, "getPair", [JOE, WAVAX]) == 1

    @pytest.mark.unit
    def test_missing_pair(self, oracle_chain):
        token = "0x" + "5" * 40
        oracle_chain.set(FACTORY, "getPair", "0x" + "0" * 40, args=[token, WAVAX])
        with pytest.raises(RemoteCallError):
            run(PriceOracle(oracle_chain).get_price(token))


class TestMetricsContext:
    """Tests for TTL lookup and collaborator cleanup."""

    @pytest.mark.unit
    @pytest.mark.cache
    def test_ttls_come_from_configuration(self, clock):
        ctx = MetricsContext(FakeChain(), None, clock=clock, ttl_config={"tvl": 5})
        assert ctx.ttl_ms(MetricKind.TVL) == 5000
        assert ctx.ttl_ms(MetricKind.JOE_TOTAL_SUPPLY) == 10_000
        assert ctx.ttl_ms(MetricKind.SUPPLY_APY) == 60_000
        assert ctx.ttl_ms(MetricKind.STAKE_APR) == 3_600_000

    @pytest.mark.unit
    @pytest.mark.cache
    def test_window_kinds_have_no_ttl(self, clock):
        ctx = MetricsContext(FakeChain(), None, clock=clock)
        with pytest.raises(KeyError):
            ctx.ttl_ms(MetricKind.POOL_VOLUME)

    @pytest.mark.unit
    @pytest.mark.cache
    def test_cached_uses_entity_and_kind(self, clock):
        ctx = MetricsContext(FakeChain(), None, clock=clock)
        compute = AsyncMock(return_value=Decimal("1.5"))

        assert run(ctx.cached("0xpool", MetricKind.TVL, compute)) == Decimal("1.5")
        assert run(ctx.cached("0xpool", MetricKind.TVL, compute)) == Decimal("1.5")
        assert compute.await_count == 1
        assert ("0xpool", MetricKind.TVL) in ctx.cache

    @pytest.mark.unit
    def test_aclose_closes_collaborators(self, clock):
        chain, prices, events = MagicMock(), MagicMock(), MagicMock()
        for collaborator in (chain, prices, events):
            collaborator.aclose = AsyncMock()
        run(MetricsContext(chain, prices, events, clock=clock).aclose())
        for collaborator in (chain, prices, events):
            collaborator.aclose.assert_awaited_once()
