"""Wallet connectors and the connection state machine."""

from .base import Connector, ProviderConnector
from .classifier import classify_connector_error, get_error_message
from .controller import ConnectionController
from .injected import InjectedConnector
from .models import (
    ClassifiedError,
    ConnectionState,
    ConnectorKind,
    ErrorKind,
    ProviderEvent,
    ProviderEventType,
    WalletSession,
)
from .registry import ConnectorRegistry
from .remote import WalletConnectConnector, WalletLinkConnector
from .session_store import SessionStore

__all__ = [
    "ClassifiedError",
    "ConnectionController",
    "ConnectionState",
    "Connector",
    "ConnectorKind",
    "ConnectorRegistry",
    "ErrorKind",
    "InjectedConnector",
    "ProviderConnector",
    "ProviderEvent",
    "ProviderEventType",
    "SessionStore",
    "WalletConnectConnector",
    "WalletLinkConnector",
    "WalletSession",
    "classify_connector_error",
    "get_error_message",
]
