"""
Base classes for wallet connectors.

A connector knows how to reach one kind of wallet provider, ask it for an
account, and report account/chain changes while somebody is listening.
Blocking web3 calls are run in the default executor so activation can be
awaited from the event loop.
"""

import asyncio
from typing import Callable, Iterable, List, Optional, Tuple, Type

from staking_toolkit.connectors.models import (
    ConnectorKind,
    ProviderEvent,
    ProviderEventType,
    WalletSession,
)
from staking_toolkit.shared.constants import ConnectorConstants, GlobalConstants
from staking_toolkit.shared.exceptions import (
    ConnectorException,
    NoEthereumProviderError,
    UnsupportedChainIdError,
    UserRejectedRequestError,
)
from staking_toolkit.shared.logging import get_logger
from staking_toolkit.shared.services.web3_service import (
    Web3Service,
    extract_rpc_error_code,
)

_logger = get_logger(__name__)

ProviderListener = Callable[[ProviderEvent], None]


class Connector:
    """
    Activation capability for one wallet backend.

    Subclasses implement activate() and may override is_authorized() to
    support resuming a session without user interaction.
    """

    kind: ConnectorKind

    def __init__(self):
        self._listeners: List[ProviderListener] = []
        self._session: Optional[WalletSession] = None

    @property
    def name(self) -> str:
        return self.kind.value

    @property
    def session(self) -> Optional[WalletSession]:
        return self._session

    async def activate(self) -> WalletSession:
        raise NotImplementedError

    async def is_authorized(self) -> bool:
        """Whether a previous authorization can be resumed silently."""
        return False

    async def deactivate(self) -> None:
        self._session = None

    def translate_error(self, error: Exception) -> Exception:
        return error

    def subscribe(self, listener: ProviderListener) -> Callable[[], None]:
        """Register for provider events; returns an unsubscribe callable."""
        self._listeners.append(listener)
        if len(self._listeners) == 1:
            self._start_watching()

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
                if not self._listeners:
                    self._stop_watching()

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: ProviderEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _start_watching(self) -> None:
        pass

    def _stop_watching(self) -> None:
        pass


class ProviderConnector(Connector):
    """
    Connector backed by a JSON-RPC wallet provider.

    Activation requests accounts, checks the chain against the supported
    list and keeps the resulting session. Provider events are produced by
    polling eth_accounts / eth_chainId while listeners are subscribed.
    """

    user_rejected_error: Type[UserRejectedRequestError] = UserRejectedRequestError

    def __init__(
        self,
        supported_chain_ids: Iterable[int] = GlobalConstants.SUPPORTED_CHAIN_IDS,
        poll_interval: float = ConnectorConstants.POLL_INTERVAL,
    ):
        super().__init__()
        self.supported_chain_ids = tuple(supported_chain_ids)
        self.poll_interval = poll_interval
        self._watch_task: Optional[asyncio.Task] = None

    def _build_provider(self) -> Web3Service:
        raise NotImplementedError

    async def activate(self) -> WalletSession:
        web3_service = self._build_provider()
        loop = asyncio.get_running_loop()

        try:
            connected = await loop.run_in_executor(
                None, web3_service.is_connected
            )
            if not connected:
                raise NoEthereumProviderError(
                    f"{self.name} provider is not reachable"
                )
            accounts = await loop.run_in_executor(
                None, web3_service.request_accounts
            )
            chain_id = await loop.run_in_executor(
                None, web3_service.get_chain_id
            )
        except ConnectorException:
            raise
        except Exception as e:
            raise self.translate_error(e) from e

        if not accounts:
            raise self.user_rejected_error(
                f"{self.name} did not authorize any account"
            )
        if chain_id not in self.supported_chain_ids:
            raise UnsupportedChainIdError(chain_id, self.supported_chain_ids)

        session = WalletSession(
            kind=self.kind,
            account=accounts[0],
            chain_id=chain_id,
            web3_service=web3_service,
        )
        self._session = session
        await self._on_activated(session)
        _logger.info(
            f"{self.name} activated: {session.account} on chain {chain_id}"
        )
        return session

    async def deactivate(self) -> None:
        self._stop_watching()
        await super().deactivate()
        await self._on_deactivated()

    async def _on_activated(self, session: WalletSession) -> None:
        pass

    async def _on_deactivated(self) -> None:
        pass

    def translate_error(self, error: Exception) -> Exception:
        """Map a raw provider error onto this connector's error types."""
        if isinstance(error, ConnectorException):
            return error
        if extract_rpc_error_code(error) == ConnectorConstants.USER_REJECTED_CODE:
            return self.user_rejected_error(str(error))
        if isinstance(error, OSError):
            return NoEthereumProviderError(
                f"{self.name} provider is not reachable: {error}"
            )
        return error

    # -------------------------------------------------------------------------
    # Change polling
    # -------------------------------------------------------------------------

    def _start_watching(self) -> None:
        if self.poll_interval <= 0 or self._watch_task is not None:
            return
        loop = asyncio.get_running_loop()
        self._watch_task = loop.create_task(self._watch())

    def _stop_watching(self) -> None:
        if self._watch_task is not None:
            self._watch_task.cancel()
            self._watch_task = None

    async def _snapshot(self) -> Tuple[Tuple[str, ...], int]:
        web3_service = self._session.web3_service
        loop = asyncio.get_running_loop()
        accounts = await loop.run_in_executor(None, web3_service.get_accounts)
        chain_id = await loop.run_in_executor(None, web3_service.get_chain_id)
        return tuple(accounts), chain_id

    async def _watch(self) -> None:
        last: Optional[Tuple[Tuple[str, ...], int]] = None
        if self._session is not None:
            last = ((self._session.account,), self._session.chain_id)

        while True:
            await asyncio.sleep(self.poll_interval)
            if self._session is None:
                continue
            try:
                accounts, chain_id = await self._snapshot()
            except Exception as e:
                _logger.warning(f"{self.name} change poll failed: {e}")
                continue

            if last is not None:
                if accounts[:1] != last[0][:1]:
                    self.emit(
                        ProviderEvent(ProviderEventType.ACCOUNTS_CHANGED, list(accounts))
                    )
                if chain_id != last[1]:
                    self.emit(
                        ProviderEvent(ProviderEventType.CHAIN_CHANGED, chain_id)
                    )
            last = (accounts, chain_id)
