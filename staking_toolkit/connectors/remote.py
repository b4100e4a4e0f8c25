"""
Remote-session connectors.

WalletConnect and WalletLink pair the application with a wallet running
elsewhere (usually a phone). Requests are relayed through a JSON-RPC
endpoint; once the wallet approves, the authorized account and chain are
persisted so the session can be resumed by eager connection.
"""

from typing import Any, Dict, Optional

from web3 import Web3

from staking_toolkit.connectors.base import ProviderConnector
from staking_toolkit.connectors.models import ConnectorKind, WalletSession
from staking_toolkit.connectors.session_store import SessionStore
from staking_toolkit.shared.constants import ConnectorConstants
from staking_toolkit.shared.exceptions import (
    NoEthereumProviderError,
    WalletConnectUserRejectedRequestError,
    WalletLinkUserRejectedRequestError,
)
from staking_toolkit.shared.services.web3_service import Web3Service


class SessionConnector(ProviderConnector):
    """Connector whose authorization outlives the process."""

    def __init__(
        self,
        endpoint_url: Optional[str],
        session_store: Optional[SessionStore] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.endpoint_url = endpoint_url
        self.session_store = session_store or SessionStore()

    @property
    def session_key(self) -> str:
        return self.kind.value

    def _request_headers(self) -> Dict[str, str]:
        return {}

    def _build_provider(self) -> Web3Service:
        if not self.endpoint_url:
            raise NoEthereumProviderError(
                f"No {self.name} endpoint configured"
            )
        provider = Web3.HTTPProvider(
            self.endpoint_url,
            request_kwargs={"headers": self._request_headers()},
        )
        return Web3Service.from_provider(provider)

    async def is_authorized(self) -> bool:
        stored = await self.session_store.get(self.session_key)
        return bool(stored and stored.get("accounts"))

    async def stored_session(self) -> Optional[Dict[str, Any]]:
        return await self.session_store.get(self.session_key)

    async def _on_activated(self, session: WalletSession) -> None:
        await self.session_store.set(
            self.session_key,
            {
                "accounts": [session.account],
                "chain_id": session.chain_id,
                "endpoint": self.endpoint_url,
            },
        )

    async def _on_deactivated(self) -> None:
        await self.session_store.delete(self.session_key)


class WalletConnectConnector(SessionConnector):
    kind = ConnectorKind.WALLET_CONNECT
    user_rejected_error = WalletConnectUserRejectedRequestError

    def __init__(
        self,
        bridge_url: Optional[str] = ConnectorConstants.WALLETCONNECT_BRIDGE_URL,
        session_store: Optional[SessionStore] = None,
        **kwargs,
    ):
        super().__init__(bridge_url, session_store=session_store, **kwargs)


class WalletLinkConnector(SessionConnector):
    kind = ConnectorKind.WALLET_LINK
    user_rejected_error = WalletLinkUserRejectedRequestError

    def __init__(
        self,
        url: Optional[str] = ConnectorConstants.WALLETLINK_URL,
        app_name: str = ConnectorConstants.WALLETLINK_APP_NAME,
        session_store: Optional[SessionStore] = None,
        **kwargs,
    ):
        super().__init__(url, session_store=session_store, **kwargs)
        self.app_name = app_name

    def _request_headers(self) -> Dict[str, str]:
        return {"X-App-Name": self.app_name}
