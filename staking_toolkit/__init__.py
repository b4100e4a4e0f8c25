"""Staking Toolkit - Python SDK for connecting wallets and delegating ZRX stake."""

__version__ = "0.1.0"

from .connectors import ConnectionController, ConnectorRegistry
from .shared import registry
from .staking import StakeBatchBuilder, StakeSubmissionOrchestrator

__all__ = [
    "ConnectionController",
    "ConnectorRegistry",
    "StakeBatchBuilder",
    "StakeSubmissionOrchestrator",
    "registry",
]
