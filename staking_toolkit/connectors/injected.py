"""
Injected wallet connector.

Talks to a wallet that exposes its provider on this machine, such as a
browser extension bridge or a local node, over HTTP or IPC. No provider at
the configured endpoint surfaces as NoEthereumProviderError.
"""

import asyncio
from typing import Optional

from staking_toolkit.connectors.base import ProviderConnector
from staking_toolkit.connectors.models import ConnectorKind
from staking_toolkit.shared.constants import ConnectorConstants
from staking_toolkit.shared.exceptions import (
    InjectedUserRejectedRequestError,
    NoEthereumProviderError,
)
from staking_toolkit.shared.logging import get_logger
from staking_toolkit.shared.services.web3_service import Web3Service

_logger = get_logger(__name__)


class InjectedConnector(ProviderConnector):
    """Provider exposed locally by the user's wallet (HTTP or IPC endpoint)."""

    kind = ConnectorKind.INJECTED
    user_rejected_error = InjectedUserRejectedRequestError

    def __init__(
        self,
        provider_url: Optional[str] = ConnectorConstants.INJECTED_PROVIDER_URL,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.provider_url = provider_url

    def _build_provider(self) -> Web3Service:
        if not self.provider_url:
            raise NoEthereumProviderError(
                "No injected provider configured (STAKING_INJECTED_PROVIDER)"
            )
        return Web3Service.from_rpc_url(self.provider_url)

    async def is_authorized(self) -> bool:
        """Authorized when the provider already exposes an account."""
        if not self.provider_url:
            return False

        web3_service = self._build_provider()
        loop = asyncio.get_running_loop()
        try:
            if not await loop.run_in_executor(None, web3_service.is_connected):
                return False
            accounts = await loop.run_in_executor(
                None, web3_service.get_accounts
            )
        except Exception as e:
            _logger.debug(f"Injected authorization check failed: {e}")
            return False
        return len(accounts) > 0
