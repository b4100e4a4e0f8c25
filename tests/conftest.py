"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests.
"""

import asyncio
from typing import Optional
from unittest.mock import MagicMock

import pytest

from staking_toolkit.connectors.base import Connector
from staking_toolkit.connectors.models import ConnectorKind, WalletSession


class FakeConnector(Connector):
    """
    In-memory connector.

    Activation resolves immediately unless a gate is installed, in which
    case it waits until the gate is set. Setting ``error`` makes activation
    raise it instead of returning a session.
    """

    def __init__(
        self,
        kind: ConnectorKind,
        account: str = "0x52f541764e6e90eebc5c21ff570de0e2d63766b6",
        chain_id: int = 1,
        authorized: bool = False,
        error: Optional[Exception] = None,
    ):
        super().__init__()
        self.kind = kind
        self.account = account
        self.chain_id = chain_id
        self.authorized = authorized
        self.error = error
        self.web3_service = MagicMock()
        self.gate: Optional[asyncio.Event] = None
        self.activate_calls = 0
        self.deactivate_calls = 0

    def hold(self) -> asyncio.Event:
        """Make the next activations block until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate

    async def is_authorized(self) -> bool:
        return self.authorized

    async def activate(self) -> WalletSession:
        self.activate_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self.web3_service.get_network_id.return_value = self.chain_id
        self._session = WalletSession(
            kind=self.kind,
            account=self.account,
            chain_id=self.chain_id,
            web3_service=self.web3_service,
        )
        return self._session

    async def deactivate(self) -> None:
        self.deactivate_calls += 1
        await super().deactivate()


@pytest.fixture
def make_connector():
    """Factory for FakeConnector instances."""
    return FakeConnector


@pytest.fixture
def mock_web3_service():
    """Mock Web3Service for unit tests."""
    service = MagicMock()
    service.send_batch_execute.return_value = "0x" + "ab" * 32
    service.wait_for_receipt.return_value = {
        "transactionHash": "0x" + "ab" * 32,
        "blockNumber": 11000000,
        "status": 1,
    }
    service.get_gas_price.return_value = 20 * 10**9
    return service


@pytest.fixture
def sample_owner_address() -> str:
    """Sample staker address for tests."""
    return "0x52f541764e6e90eebc5c21ff570de0e2d63766b6"


@pytest.fixture
def sample_other_address() -> str:
    return "0x7e1444ba99dcdffe8fbdb42c02fb0da4aaace4d5"


@pytest.fixture
def sample_staking_proxy() -> str:
    """Mainnet StakingProxy address."""
    return "0xa26e80e7dea86279c6d778d702cc413e6cffa777"


@pytest.fixture
def sample_gas_station_payload():
    """ETH Gas Station response (prices in tenths of gwei, waits in minutes)."""
    return {
        "fast": 400.0,
        "fastest": 600.0,
        "safeLow": 200.0,
        "average": 300.0,
        "fastWait": 0.5,
        "fastestWait": 0.4,
        "safeLowWait": 10.0,
        "avgWait": 2.5,
        "blockNum": 11000000,
    }


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line("markers", "slow: mark test as slow-running")
