"""
Event log source - decoded contract events over a time range.

Backed by the Moralis deep-index API, which accepts an event ABI plus a date
range and returns decoded event data. Used to sample hourly swap volume and
JoeMaker conversions for the rolling windows.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp
from web3 import Web3

from ..config.settings import EVENTS_TIMEOUT_SECONDS, MORALIS_API_KEY, MORALIS_CHAIN, MORALIS_ENDPOINT
from ..core.results import RemoteCallError

logger = logging.getLogger(__name__)


def event_topic(event_abi: Dict[str, Any]) -> str:
    """keccak topic0 of an event ABI, e.g. Swap(address,uint256,...)."""
    types = ",".join(item["type"] for item in event_abi["inputs"])
    return Web3.to_hex(Web3.keccak(text=f"{event_abi['name']}({types})"))


def _iso(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


class MoralisEventSource:
    """Paginated event queries against the Moralis API."""

    def __init__(self, api_key: Optional[str] = MORALIS_API_KEY, endpoint: str = MORALIS_ENDPOINT,
                 chain: str = MORALIS_CHAIN, timeout: int = EVENTS_TIMEOUT_SECONDS,
                 session: aiohttp.ClientSession = None):
        self.api_key = api_key
        self.endpoint = endpoint.rstrip("/")
        self.chain = chain
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "X-API-Key": self.api_key or "",
            "Content-Type": "application/json",
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def fetch_events(self, address: str, event_abi: Dict[str, Any],
                           start_ms: int, end_ms: int) -> List[Dict[str, Any]]:
        """
        Fetch decoded events emitted by `address` in [start_ms, end_ms].

        Args:
            address: Emitting contract
            event_abi: ABI of the event to decode
            start_ms: Range start (ms since epoch)
            end_ms: Range end (ms since epoch)

        Returns:
            List of decoded event data dicts (values as strings)

        Raises:
            RemoteCallError: HTTP failure or unexpected payload
        """
        url = f"{self.endpoint}/{address}/events"
        params = {
            "chain": self.chain,
            "from_date": _iso(start_ms),
            "to_date": _iso(end_ms),
            "topic": event_topic(event_abi),
        }

        events: List[Dict[str, Any]] = []
        session = self._get_session()
        try:
            while True:
                async with session.post(url, params=params, json=event_abi, headers=self._headers(),
                                        timeout=aiohttp.ClientTimeout(total=self.timeout)) as resp:
                    if resp.status != 200:
                        body = await resp.text()
                        raise ValueError(f"HTTP {resp.status}: {body[:200]}")
                    payload = await resp.json()

                for item in payload.get("result", []):
                    events.append(item.get("data", {}))

                cursor = payload.get("cursor")
                if not cursor:
                    break
                params = dict(params, cursor=cursor)
        except Exception as e:
            logger.warning("Event query %s on %s failed: %s", event_abi.get("name"), address, e)
            raise RemoteCallError(address, f"events:{event_abi.get('name')}", e) from e

        logger.debug("Fetched %d %s events for %s", len(events), event_abi.get("name"), address)
        return events

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
