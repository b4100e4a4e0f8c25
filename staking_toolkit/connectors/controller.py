"""
Wallet connection state machine.

The controller owns the ConnectionState for a client instance. It resumes a
previous session on startup, activates connectors on request, and refreshes
the active connector when its provider reports an account or chain change.
Every transition is published once through the injected on_change callback.
"""

import asyncio
from dataclasses import replace
from typing import Callable, Optional

from staking_toolkit.connectors.classifier import classify_connector_error
from staking_toolkit.connectors.models import (
    ClassifiedError,
    ConnectionState,
    ConnectorKind,
    ErrorKind,
    ProviderEvent,
    WalletSession,
)
from staking_toolkit.connectors.registry import ConnectorRegistry
from staking_toolkit.shared import registry as contract_registry
from staking_toolkit.shared.constants import GlobalConstants
from staking_toolkit.shared.logging import get_logger
from staking_toolkit.shared.types import AccountInfoDict

_logger = get_logger(__name__)

StateListener = Callable[[ConnectionState], None]


class ConnectionController:
    """
    Activation state machine over a ConnectorRegistry.

    Only one activation runs at a time. Requests made while one is in flight,
    or for the connector that is already active, are ignored.
    """

    def __init__(
        self,
        connectors: ConnectorRegistry,
        on_change: Optional[StateListener] = None,
        fallback_network_id: int = GlobalConstants.DEFAULT_NETWORK_ID,
        classifier: Callable[[Exception], ErrorKind] = classify_connector_error,
    ):
        self._connectors = connectors
        self._on_change = on_change
        self._classify = classifier
        self._state = ConnectionState(network_id=fallback_network_id)
        self._session: Optional[WalletSession] = None

        self._listen_requested = False
        self._listening_to: Optional[ConnectorKind] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def session(self) -> Optional[WalletSession]:
        """Session of the active connector, if any."""
        return self._session

    @property
    def connectors(self) -> ConnectorRegistry:
        return self._connectors

    @property
    def is_listening(self) -> bool:
        return self._unsubscribe is not None

    def _transition(self, **changes) -> None:
        new_state = replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        self._sync_listener()
        if self._on_change is not None:
            self._on_change(new_state)

    # -------------------------------------------------------------------------
    # Activation
    # -------------------------------------------------------------------------

    async def try_eager_connect(self) -> bool:
        """
        Resume the first connector that reports an existing authorization.

        Returns True once startup negotiation is settled, whether or not a
        session was resumed.
        """
        if self._state.eager_attempt_completed:
            return True

        try:
            for kind, connector in self._connectors.items():
                try:
                    authorized = await connector.is_authorized()
                except Exception as e:
                    _logger.warning(
                        f"{kind.value} authorization check failed: {e}"
                    )
                    continue

                if authorized:
                    _logger.info(f"Resuming {kind.value} session")
                    await self._activate(kind, silent=True)
                    break
        finally:
            self._transition(eager_attempt_completed=True)

        return True

    async def activate(self, kind: ConnectorKind) -> None:
        """Activate a connector; ignored while busy or if already active."""
        if self._state.activating_connector is not None:
            _logger.debug(
                f"Ignoring {kind.value} activation, "
                f"{self._state.activating_connector.value} is in flight"
            )
            return
        if self._state.active_connector == kind:
            _logger.debug(f"{kind.value} is already active")
            return

        await self._activate(kind)

    async def _activate(self, kind: ConnectorKind, silent: bool = False) -> None:
        if self._state.activating_connector is not None:
            return

        connector = self._connectors.get(kind)
        previous = self._state.active_connector
        self._transition(activating_connector=kind)

        try:
            session = await connector.activate()
            network_id = await self._read_network_id(session)
        except asyncio.CancelledError:
            self._transition(activating_connector=None)
            raise
        except Exception as error:
            if silent:
                _logger.info(f"Could not resume {kind.value} session: {error}")
                self._transition(activating_connector=None)
                return

            classified = ClassifiedError(self._classify(error), error)
            _logger.warning(
                f"{kind.value} activation failed "
                f"({classified.kind.value}): {error}"
            )
            self._transition(activating_connector=None, last_error=classified)
            return

        if previous is not None and previous != kind:
            await self._deactivate_connector(previous)

        self._session = session
        self._transition(
            activating_connector=None,
            active_connector=kind,
            account=session.account,
            chain_id=session.chain_id,
            network_id=self._reconcile_network(network_id),
            last_error=None,
        )

    async def _read_network_id(self, session: WalletSession) -> int:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, session.web3_service.get_network_id
            )
        except Exception as e:
            _logger.warning(
                f"net_version unavailable, using chain id {session.chain_id}: {e}"
            )
            return session.chain_id

    def _reconcile_network(self, network_id: int) -> int:
        """Adopt the wallet's network id, logging when it differs."""
        current = self._state.network_id
        if current is not None and network_id != current:
            _logger.info(
                f"Wallet is on {GlobalConstants.get_network_name(network_id)} "
                f"({network_id}), switching from network {current}"
            )
        return network_id

    async def deactivate(self) -> None:
        """Disconnect the active connector and forget its session."""
        kind = self._state.active_connector
        if kind is None or self._state.activating_connector is not None:
            return

        await self._deactivate_connector(kind)
        self._session = None
        self._transition(active_connector=None, account=None, chain_id=None)

    async def _deactivate_connector(self, kind: ConnectorKind) -> None:
        try:
            await self._connectors.get(kind).deactivate()
        except Exception as e:
            _logger.warning(f"Failed to deactivate {kind.value}: {e}")

    # -------------------------------------------------------------------------
    # External change listener
    # -------------------------------------------------------------------------

    def listen_for_external_changes(self, enabled: bool) -> None:
        """
        Follow account/chain changes reported by the active connector.

        The subscription only exists while the eager attempt has completed
        and no activation is in flight; it is re-established after each
        activation while enabled.
        """
        self._listen_requested = enabled
        self._sync_listener()

    def _sync_listener(self) -> None:
        state = self._state
        target = None
        if (
            self._listen_requested
            and state.eager_attempt_completed
            and state.activating_connector is None
        ):
            target = state.active_connector

        if target == self._listening_to:
            return

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            self._listening_to = None

        if target is not None:
            connector = self._connectors.get(target)
            self._unsubscribe = connector.subscribe(self._on_provider_event)
            self._listening_to = target

    def _on_provider_event(self, event: ProviderEvent) -> None:
        kind = self._listening_to
        if kind is None or self._state.activating_connector is not None:
            return

        _logger.info(f"{kind.value} reported {event.type.value}, refreshing")
        self._refresh_task = asyncio.ensure_future(self._activate(kind))

    # -------------------------------------------------------------------------
    # Account info
    # -------------------------------------------------------------------------

    async def fetch_account_info(self) -> Optional[AccountInfoDict]:
        """Read ETH/ZRX balances and the ZRX allowance of the active account."""
        session = self._session
        if session is None:
            return None

        loop = asyncio.get_running_loop()
        zrx_token = await loop.run_in_executor(
            None, contract_registry.get_zrx_token_address, session.chain_id
        )
        erc20_proxy = await loop.run_in_executor(
            None, contract_registry.get_erc20_proxy_address, session.chain_id
        )
        web3_service = session.web3_service

        eth_balance, zrx_balance, zrx_allowance = await asyncio.gather(
            loop.run_in_executor(
                None, web3_service.get_eth_balance, session.account
            ),
            loop.run_in_executor(
                None, web3_service.get_erc20_balance, zrx_token, session.account
            ),
            loop.run_in_executor(
                None,
                web3_service.get_erc20_allowance,
                zrx_token,
                session.account,
                erc20_proxy,
            ),
        )

        return AccountInfoDict(
            address=session.account,
            chain_id=session.chain_id,
            eth_balance=eth_balance,
            zrx_balance=zrx_balance,
            zrx_allowance=zrx_allowance,
        )
