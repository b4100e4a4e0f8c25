"""
Unit tests for the wallet connection state machine.
"""

import asyncio
import threading
from unittest.mock import patch

import pytest

from staking_toolkit.connectors.controller import ConnectionController
from staking_toolkit.connectors.models import (
    ConnectorKind,
    ErrorKind,
    ProviderEvent,
    ProviderEventType,
)
from staking_toolkit.connectors.registry import ConnectorRegistry
from staking_toolkit.shared.exceptions import (
    InjectedUserRejectedRequestError,
    NoEthereumProviderError,
    UnsupportedChainIdError,
)

INJECTED = ConnectorKind.INJECTED
WALLET_CONNECT = ConnectorKind.WALLET_CONNECT
WALLET_LINK = ConnectorKind.WALLET_LINK


@pytest.fixture
def connectors(make_connector):
    return {
        INJECTED: make_connector(INJECTED),
        WALLET_CONNECT: make_connector(
            WALLET_CONNECT, account="0x7e1444ba99dcdffe8fbdb42c02fb0da4aaace4d5"
        ),
        WALLET_LINK: make_connector(WALLET_LINK),
    }


@pytest.fixture
def transitions():
    return []


@pytest.fixture
def controller(connectors, transitions):
    return ConnectionController(
        ConnectorRegistry(connectors.values()), on_change=transitions.append
    )


class TestRegistry:
    def test_iterates_in_declaration_order(self, make_connector):
        registry = ConnectorRegistry(
            [make_connector(WALLET_LINK), make_connector(INJECTED)]
        )
        assert registry.kinds() == [INJECTED, WALLET_LINK]
        assert WALLET_CONNECT not in registry

    def test_rejects_duplicates(self, make_connector):
        with pytest.raises(ValueError):
            ConnectorRegistry([make_connector(INJECTED), make_connector(INJECTED)])

    def test_unknown_kind(self, make_connector):
        with pytest.raises(ValueError):
            ConnectorRegistry([make_connector(INJECTED)]).get(WALLET_LINK)


class TestActivate:
    @pytest.mark.asyncio
    async def test_successful_activation(self, controller, connectors, transitions):
        await controller.activate(WALLET_CONNECT)

        state = controller.state
        assert state.active_connector == WALLET_CONNECT
        assert state.activating_connector is None
        assert state.account == connectors[WALLET_CONNECT].account
        assert state.chain_id == 1
        assert state.last_error is None
        assert controller.session.kind == WALLET_CONNECT
        assert [t.activating_connector for t in transitions] == [
            WALLET_CONNECT,
            None,
        ]

    @pytest.mark.asyncio
    async def test_second_activation_ignored_while_in_flight(
        self, controller, connectors
    ):
        gate = connectors[INJECTED].hold()
        first = asyncio.ensure_future(controller.activate(INJECTED))
        await asyncio.sleep(0)
        assert controller.state.activating_connector == INJECTED

        await controller.activate(WALLET_CONNECT)
        assert connectors[WALLET_CONNECT].activate_calls == 0
        assert controller.state.activating_connector == INJECTED

        gate.set()
        await first
        assert controller.state.active_connector == INJECTED
        assert controller.state.activating_connector is None

    @pytest.mark.asyncio
    async def test_activating_active_connector_is_noop(
        self, controller, connectors, transitions
    ):
        await controller.activate(INJECTED)
        count = len(transitions)

        await controller.activate(INJECTED)
        assert connectors[INJECTED].activate_calls == 1
        assert len(transitions) == count

    @pytest.mark.asyncio
    async def test_no_provider_keeps_previous_connector(
        self, controller, connectors
    ):
        await controller.activate(WALLET_CONNECT)
        connectors[INJECTED].error = NoEthereumProviderError()

        await controller.activate(INJECTED)

        state = controller.state
        assert state.active_connector == WALLET_CONNECT
        assert state.activating_connector is None
        assert state.last_error.kind == ErrorKind.NO_PROVIDER_DETECTED
        assert isinstance(state.last_error.error, NoEthereumProviderError)
        assert connectors[WALLET_CONNECT].deactivate_calls == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,kind",
        [
            (UnsupportedChainIdError(3, [1]), ErrorKind.UNSUPPORTED_NETWORK),
            (InjectedUserRejectedRequestError(), ErrorKind.USER_REJECTED),
            (RuntimeError("socket closed"), ErrorKind.UNKNOWN),
        ],
    )
    async def test_failures_are_classified(self, controller, connectors, error, kind):
        connectors[INJECTED].error = error

        await controller.activate(INJECTED)

        assert controller.state.active_connector is None
        assert controller.state.last_error.kind == kind

    @pytest.mark.asyncio
    async def test_success_clears_last_error(self, controller, connectors):
        connectors[INJECTED].error = NoEthereumProviderError()
        await controller.activate(INJECTED)
        assert controller.state.last_error is not None

        connectors[INJECTED].error = None
        await controller.activate(INJECTED)
        assert controller.state.last_error is None
        assert controller.state.active_connector == INJECTED

    @pytest.mark.asyncio
    async def test_switching_deactivates_previous(self, controller, connectors):
        await controller.activate(INJECTED)
        await controller.activate(WALLET_LINK)

        assert connectors[INJECTED].deactivate_calls == 1
        assert controller.state.active_connector == WALLET_LINK

    @pytest.mark.asyncio
    async def test_network_follows_wallet_chain(self, make_connector):
        ganache = make_connector(INJECTED, chain_id=1337)
        controller = ConnectionController(
            ConnectorRegistry([ganache]), fallback_network_id=1
        )
        assert controller.state.network_id == 1

        await controller.activate(INJECTED)
        assert controller.state.network_id == 1337
        assert controller.state.chain_id == 1337

    @pytest.mark.asyncio
    async def test_network_id_read_from_net_version(self, make_connector):
        wallet = make_connector(INJECTED, chain_id=1337)
        wallet.web3_service.get_network_id.side_effect = lambda: 5777
        controller = ConnectionController(
            ConnectorRegistry([wallet]), fallback_network_id=1
        )

        await controller.activate(INJECTED)

        assert controller.state.chain_id == 1337
        assert controller.state.network_id == 5777

    @pytest.mark.asyncio
    async def test_network_id_falls_back_to_chain_id(self, make_connector):
        wallet = make_connector(INJECTED, chain_id=42)
        wallet.web3_service.get_network_id.side_effect = OSError("net_version")
        controller = ConnectionController(ConnectorRegistry([wallet]))

        await controller.activate(INJECTED)

        assert controller.state.active_connector == INJECTED
        assert controller.state.network_id == 42

    @pytest.mark.asyncio
    async def test_deactivate(self, controller, connectors):
        await controller.activate(INJECTED)
        await controller.deactivate()

        assert controller.state.active_connector is None
        assert controller.state.account is None
        assert controller.session is None
        assert connectors[INJECTED].deactivate_calls == 1


class TestEagerConnect:
    @pytest.mark.asyncio
    async def test_first_authorized_connector_wins(self, make_connector):
        link = make_connector(WALLET_LINK, authorized=True)
        injected = make_connector(INJECTED, authorized=True)
        controller = ConnectionController(ConnectorRegistry([link, injected]))

        assert await controller.try_eager_connect() is True

        assert controller.state.active_connector == INJECTED
        assert controller.state.eager_attempt_completed is True
        assert link.activate_calls == 0

    @pytest.mark.asyncio
    async def test_no_authorized_connector(self, controller, connectors):
        assert await controller.try_eager_connect() is True

        assert controller.state.eager_attempt_completed is True
        assert controller.state.active_connector is None
        assert all(c.activate_calls == 0 for c in connectors.values())

    @pytest.mark.asyncio
    async def test_failed_resume_is_silent(self, make_connector):
        injected = make_connector(
            INJECTED, authorized=True, error=NoEthereumProviderError()
        )
        link = make_connector(WALLET_LINK, authorized=True)
        controller = ConnectionController(ConnectorRegistry([injected, link]))

        await controller.try_eager_connect()

        assert controller.state.eager_attempt_completed is True
        assert controller.state.active_connector is None
        assert controller.state.last_error is None
        assert link.activate_calls == 0


class TestExternalChanges:
    @pytest.mark.asyncio
    async def test_listener_waits_for_eager_attempt(self, controller, connectors):
        await controller.activate(INJECTED)
        controller.listen_for_external_changes(True)
        assert not controller.is_listening

        await controller.try_eager_connect()
        assert controller.is_listening
        assert connectors[INJECTED].listener_count == 1

    @pytest.mark.asyncio
    async def test_listener_suspended_during_activation(
        self, controller, connectors
    ):
        await controller.try_eager_connect()
        await controller.activate(INJECTED)
        controller.listen_for_external_changes(True)
        assert connectors[INJECTED].listener_count == 1

        gate = connectors[WALLET_CONNECT].hold()
        pending = asyncio.ensure_future(controller.activate(WALLET_CONNECT))
        await asyncio.sleep(0)
        assert connectors[INJECTED].listener_count == 0
        assert not controller.is_listening

        gate.set()
        await pending
        assert connectors[INJECTED].listener_count == 0
        assert connectors[WALLET_CONNECT].listener_count == 1

    @pytest.mark.asyncio
    async def test_account_change_refreshes_session(self, controller, connectors):
        await controller.try_eager_connect()
        await controller.activate(INJECTED)
        controller.listen_for_external_changes(True)

        new_account = "0x000000073d065fc33a3050c2d4a8e82ee5c5c25a"
        connectors[INJECTED].account = new_account
        connectors[INJECTED].emit(
            ProviderEvent(ProviderEventType.ACCOUNTS_CHANGED, [new_account])
        )
        await controller._refresh_task

        assert connectors[INJECTED].activate_calls == 2
        assert controller.state.account == new_account
        assert controller.state.active_connector == INJECTED
        assert connectors[INJECTED].listener_count == 1

    @pytest.mark.asyncio
    async def test_chain_change_updates_network(self, controller, connectors):
        await controller.try_eager_connect()
        await controller.activate(INJECTED)
        controller.listen_for_external_changes(True)

        connectors[INJECTED].chain_id = 42
        connectors[INJECTED].emit(ProviderEvent(ProviderEventType.CHAIN_CHANGED, 42))
        await controller._refresh_task

        assert controller.state.chain_id == 42
        assert controller.state.network_id == 42

    @pytest.mark.asyncio
    async def test_disable_unsubscribes(self, controller, connectors):
        await controller.try_eager_connect()
        await controller.activate(INJECTED)
        controller.listen_for_external_changes(True)

        controller.listen_for_external_changes(False)
        assert not controller.is_listening
        assert connectors[INJECTED].listener_count == 0


class TestAccountInfo:
    @pytest.mark.asyncio
    async def test_no_session(self, controller):
        assert await controller.fetch_account_info() is None

    @pytest.mark.asyncio
    async def test_reads_balances(self, controller, connectors):
        await controller.activate(INJECTED)
        web3_service = connectors[INJECTED].web3_service
        web3_service.get_eth_balance.return_value = 5
        web3_service.get_erc20_balance.return_value = 7
        web3_service.get_erc20_allowance.return_value = 9

        with patch(
            "staking_toolkit.connectors.controller.contract_registry"
        ) as registry:
            registry.get_zrx_token_address.return_value = "0xzrx"
            registry.get_erc20_proxy_address.return_value = "0xproxy"
            info = await controller.fetch_account_info()

        assert info == {
            "address": connectors[INJECTED].account,
            "chain_id": 1,
            "eth_balance": 5,
            "zrx_balance": 7,
            "zrx_allowance": 9,
        }
        web3_service.get_erc20_allowance.assert_called_once_with(
            "0xzrx", connectors[INJECTED].account, "0xproxy"
        )

    @pytest.mark.asyncio
    async def test_addresses_resolved_off_the_event_loop(
        self, controller, connectors
    ):
        await controller.activate(INJECTED)
        lookup_threads = []

        def lookup(chain_id):
            lookup_threads.append(threading.current_thread())
            return "0xzrx"

        with patch(
            "staking_toolkit.connectors.controller.contract_registry"
        ) as registry:
            registry.get_zrx_token_address.side_effect = lookup
            registry.get_erc20_proxy_address.side_effect = lookup
            await controller.fetch_account_info()

        assert len(lookup_threads) == 2
        assert threading.current_thread() not in lookup_threads
