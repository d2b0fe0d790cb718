"""
Chain adapter - async contract caller for Avalanche C-Chain.

Every remote read of the metric engine goes through call_contract(). Failures
of any kind (connection, timeout, revert, decoding) surface as
RemoteCallError; reverts and undecodable results raise the
ContractRevertError subclass. The adapter does not retry.
"""

import logging
from typing import Any, Dict, List, Sequence, Tuple

import aiohttp
from web3 import AsyncWeb3, Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..config.settings import AVAX_RPC, RPC_TIMEOUT_SECONDS
from ..core.results import ContractRevertError, RemoteCallError
from .abis import ERC20_ABI

logger = logging.getLogger(__name__)


class ChainAdapter:
    """Thin wrapper around AsyncWeb3 with contract object caching."""

    def __init__(self, rpc_url: str = AVAX_RPC, timeout: int = RPC_TIMEOUT_SECONDS, w3: AsyncWeb3 = None):
        self.rpc_url = rpc_url
        self.w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
            rpc_url,
            request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
        ))
        self._contracts: Dict[Tuple[str, int], Any] = {}

    def contract(self, address: str, abi: List[dict] = ERC20_ABI):
        checksum = Web3.to_checksum_address(address)
        key = (checksum, id(abi))
        contract = self._contracts.get(key)
        if contract is None:
            contract = self.w3.eth.contract(address=checksum, abi=abi)
            self._contracts[key] = contract
        return contract

    async def call_contract(
        self,
        address: str,
        method: str,
        args: Sequence[Any] = (),
        abi: List[dict] = ERC20_ABI,
    ) -> Any:
        """
        Call a view method on a contract.

        Args:
            address: Contract address (any case)
            method: ABI function name
            args: Positional call arguments
            abi: ABI containing `method`

        Returns:
            Decoded return value (int, str, tuple or list)

        Raises:
            ContractRevertError: the contract reverted or returned no decodable data
            RemoteCallError: the call could not be completed
        """
        try:
            function = getattr(self.contract(address, abi).functions, method)
            return await function(*args).call()
        except (ContractLogicError, BadFunctionCallOutput) as e:
            logger.debug("Contract call %s(%s) on %s reverted: %s", method, list(args), address, e)
            raise ContractRevertError(address, method, e) from e
        except Exception as e:
            logger.warning("Contract call %s(%s) on %s failed: %s", method, list(args), address, e)
            raise RemoteCallError(address, method, e) from e

    async def aclose(self) -> None:
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
