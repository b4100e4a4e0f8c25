"""
Web3 Service module for interacting with wallet providers and the chain.

This module provides a Web3Service class that wraps a provider-backed Web3
instance, caches contract objects, and offers the calls the staking flow
needs: identity (chain id, accounts), balances, batch submission and
receipt polling.
"""

from typing import Any, Dict, List, Optional, Sequence

from hexbytes import HexBytes
from web3 import Web3
from web3.providers import BaseProvider

from staking_toolkit.shared.constants import GlobalConstants
from staking_toolkit.shared.services.resource_manager import (
    resource_manager,
)

# Chains that need extraData trimmed before blocks can be decoded
_POA_CHAIN_IDS = {4, 42}


def extract_rpc_error_code(error: Exception) -> Optional[int]:
    """Return the JSON-RPC error code carried by a provider exception, if any."""
    response = getattr(error, "rpc_response", None)
    if isinstance(response, dict):
        payload = response.get("error")
        if isinstance(payload, dict) and "code" in payload:
            return payload["code"]

    for arg in getattr(error, "args", ()):
        if isinstance(arg, dict) and isinstance(arg.get("code"), int):
            return arg["code"]

    code = getattr(error, "code", None)
    return code if isinstance(code, int) else None


class Web3Service:
    """
    A service class for managing a Web3 connection and its interactions.

    Instances are created per wallet provider by the connectors, or per
    chain from configured RPC URLs through get_instance().
    """

    def __init__(self, w3: Web3, chain_id: Optional[int] = None):
        """
        Initialize the Web3Service.

        Args:
            w3 (Web3): A Web3 instance bound to the wallet or node provider.
            chain_id (Optional[int]): Expected chain id, used for middleware.
        """
        self.w3 = w3
        self.chain_id = chain_id
        if chain_id in _POA_CHAIN_IDS:
            self._inject_poa_middleware()
        self._contract_cache: Dict[Any, Any] = {}

    @classmethod
    def from_provider(
        cls, provider: BaseProvider, chain_id: Optional[int] = None
    ) -> "Web3Service":
        return cls(Web3(provider), chain_id)

    @classmethod
    def from_rpc_url(
        cls, rpc_url: str, chain_id: Optional[int] = None
    ) -> "Web3Service":
        if rpc_url.endswith(".ipc"):
            provider = Web3.IPCProvider(rpc_url)
        else:
            provider = Web3.HTTPProvider(rpc_url)
        return cls.from_provider(provider, chain_id)

    @classmethod
    def get_instance(cls, chain_id: int) -> "Web3Service":
        """Get or create a node-backed Web3Service for a specific chain"""
        if not hasattr(cls, "_instances"):
            cls._instances = {}

        if chain_id not in cls._instances:
            rpc_url = GlobalConstants.get_rpc_url(chain_id)
            cls._instances[chain_id] = cls.from_rpc_url(rpc_url, chain_id)

        return cls._instances[chain_id]

    def _inject_poa_middleware(self) -> None:
        from web3.middleware import ExtraDataToPOAMiddleware

        self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    def is_connected(self) -> bool:
        return self.w3.is_connected()

    def get_chain_id(self) -> int:
        return int(self.w3.eth.chain_id)

    def get_network_id(self) -> int:
        """Network id as reported by net_version"""
        return int(self.w3.net.version)

    def get_accounts(self) -> List[str]:
        """Accounts the provider currently exposes without prompting"""
        return [Web3.to_checksum_address(a) for a in self.w3.eth.accounts]

    def request_accounts(self) -> List[str]:
        """Ask the wallet for account access (may prompt the user)"""
        accounts = self.w3.manager.request_blocking("eth_requestAccounts", [])
        return [Web3.to_checksum_address(a) for a in accounts]

    # -------------------------------------------------------------------------
    # Contracts & balances
    # -------------------------------------------------------------------------

    def get_contract(self, address: str, abi_name: str) -> Any:
        """Get a contract instance for a given address and ABI name"""
        key = (address.lower(), abi_name)
        if key not in self._contract_cache:
            abi = resource_manager.load_abi(abi_name)
            self._contract_cache[key] = self.w3.eth.contract(
                address=Web3.to_checksum_address(address.lower()), abi=abi
            )
        return self._contract_cache[key]

    def get_gas_price(self) -> int:
        return int(self.w3.eth.gas_price)

    def get_eth_balance(self, owner: str) -> int:
        return int(self.w3.eth.get_balance(Web3.to_checksum_address(owner)))

    def get_erc20_balance(self, token: str, owner: str) -> int:
        contract = self.get_contract(token, "erc20")
        return int(
            contract.functions.balanceOf(
                Web3.to_checksum_address(owner)
            ).call()
        )

    def get_erc20_allowance(self, token: str, owner: str, spender: str) -> int:
        contract = self.get_contract(token, "erc20")
        return int(
            contract.functions.allowance(
                Web3.to_checksum_address(owner),
                Web3.to_checksum_address(spender),
            ).call()
        )

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def send_batch_execute(
        self,
        proxy_address: str,
        calls: Sequence[bytes],
        sender: str,
        gas_price: int,
    ) -> str:
        """
        Send batchExecute(calls) through the wallet provider.

        The wallet prompts for a signature; this blocks until it is given
        and the transaction is broadcast. Returns the transaction hash.
        """
        proxy = self.get_contract(proxy_address, "staking_proxy")
        tx_hash = proxy.functions.batchExecute(list(calls)).transact(
            {
                "from": Web3.to_checksum_address(sender),
                "gasPrice": int(gas_price),
            }
        )
        return Web3.to_hex(HexBytes(tx_hash))

    def wait_for_receipt(
        self, tx_hash: str, timeout: float, poll_latency: float
    ) -> Dict[str, Any]:
        """Block until the transaction is mined (raises TimeExhausted)"""
        return self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=timeout, poll_latency=poll_latency
        )
