"""
Registry for 0x contract addresses.
Fetches the published address book from the 0x contract-addresses package and
falls back to a built-in table when it cannot be reached.
"""

from typing import Dict, Optional

import httpx

from staking_toolkit.shared.constants import GlobalConstants, StakingConstants
from staking_toolkit.shared.exceptions import (
    ConfigurationException,
    ContractRegistryException,
)
from staking_toolkit.shared.logging import get_logger
from staking_toolkit.shared.retry import HTTP_RETRY_CONFIG, retry_sync_operation
from staking_toolkit.shared.services.http_client import get_client

_logger = get_logger(__name__)


class Registry:
    """Registry that fetches data from the published address book."""

    REGISTRY_URL = StakingConstants.CONTRACT_ADDRESSES_URL

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        url: Optional[str] = None,
    ):
        self._client = client
        self._url = url or self.REGISTRY_URL
        self._addresses: Dict[int, Dict[str, str]] = {}
        self._loaded = False

    def _load_data(self):
        fetched: Dict[int, Dict[str, str]] = {}
        try:
            raw = retry_sync_operation(
                self._fetch,
                operation_name="fetch_contract_addresses",
                **HTTP_RETRY_CONFIG.kwargs(),
            )
            fetched = self._parse_data(raw)
        except (ContractRegistryException, httpx.HTTPError, ValueError) as e:
            _logger.warning(
                f"Could not fetch contract addresses: {str(e)[:100]}. "
                "Using built-in addresses."
            )

        addresses = {
            chain_id: dict(entries)
            for chain_id, entries in StakingConstants.FALLBACK_CONTRACT_ADDRESSES.items()
        }
        for chain_id, entries in fetched.items():
            addresses.setdefault(chain_id, {}).update(entries)

        self._addresses = addresses
        self._loaded = True

    def _fetch(self) -> dict:
        client = self._client or get_client()
        response = client.get(self._url)
        if response.status_code >= 500 or response.status_code == 429:
            raise ContractRegistryException(
                f"Address book returned HTTP {response.status_code}"
            )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _parse_data(raw: dict) -> Dict[int, Dict[str, str]]:
        """Parse {"<chainId>": {"<contract>": "<address>"}} into int-keyed dicts."""
        if not isinstance(raw, dict):
            raise ValueError("Address book is not a JSON object")

        parsed: Dict[int, Dict[str, str]] = {}
        for chain_key, entries in raw.items():
            try:
                chain_id = int(chain_key)
            except (TypeError, ValueError):
                continue
            if not isinstance(entries, dict):
                continue
            parsed[chain_id] = {
                name: address
                for name, address in entries.items()
                if isinstance(address, str) and address.startswith("0x")
            }
        return parsed

    def refresh(self):
        """Force a reload of the address book."""
        self._load_data()

    def get_contract_addresses(self, chain_id: int) -> Dict[str, str]:
        if not self._loaded:
            self._load_data()

        addresses = self._addresses.get(int(chain_id))
        if not addresses:
            raise ConfigurationException(
                f"No 0x contract deployment known for chain {chain_id} "
                f"({GlobalConstants.get_network_name(chain_id)})"
            )
        return addresses

    def get_address(self, chain_id: int, contract_name: str) -> str:
        addresses = self.get_contract_addresses(chain_id)
        address = addresses.get(contract_name)
        if not address:
            raise ConfigurationException(
                f"Contract {contract_name} is not deployed on chain {chain_id}"
            )
        return address


# =============================================================================
# SINGLETON INSTANCE
# =============================================================================

_registry = None


def _get_registry() -> Registry:
    """Get or create the registry instance."""
    global _registry
    if _registry is None:
        _registry = Registry()
    return _registry


# =============================================================================
# PUBLIC API FUNCTIONS
# =============================================================================


def get_contract_addresses(chain_id: int) -> Dict[str, str]:
    """Get all 0x contract addresses for a chain, raising if none are known."""
    return _get_registry().get_contract_addresses(chain_id)


def get_staking_proxy_address(chain_id: int) -> str:
    """Get the StakingProxy address that batched stake calls are sent to."""
    return _get_registry().get_address(chain_id, "stakingProxy")


def get_zrx_token_address(chain_id: int) -> str:
    return _get_registry().get_address(chain_id, "zrxToken")


def get_erc20_proxy_address(chain_id: int) -> str:
    return _get_registry().get_address(chain_id, "erc20Proxy")


def refresh_registry():
    """Force refresh the registry from the published address book."""
    _get_registry().refresh()
