"""
Type definitions for wallet connectors and the connection state machine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from staking_toolkit.shared.services.web3_service import Web3Service

# =============================================================================
# ENUMS
# =============================================================================


class ConnectorKind(Enum):
    """Wallet backends, in registry order."""

    INJECTED = "Injected"  # Locally exposed provider (browser extension, Frame)
    WALLET_CONNECT = "WalletConnect"  # Remote session relayed to a mobile wallet
    WALLET_LINK = "WalletLink"  # Coinbase Wallet remote session

    @classmethod
    def parse(cls, value: str) -> "ConnectorKind":
        """Accept either the display name or the enum member name."""
        normalized = value.replace("-", "").replace("_", "").lower()
        for kind in cls:
            if normalized in (
                kind.value.lower(),
                kind.name.replace("_", "").lower(),
            ):
                return kind
        raise ValueError(
            f"Unknown connector: {value}. Must be one of {[k.value for k in cls]}"
        )


class ErrorKind(Enum):
    """User-facing error categories."""

    NO_PROVIDER_DETECTED = "no_provider_detected"
    UNSUPPORTED_NETWORK = "unsupported_network"
    USER_REJECTED = "user_rejected"
    INVALID_INPUT = "invalid_input"
    SUBMISSION_FAILED = "submission_failed"
    UNKNOWN = "unknown"


class ProviderEventType(Enum):
    ACCOUNTS_CHANGED = "accountsChanged"
    CHAIN_CHANGED = "chainChanged"


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass(frozen=True)
class ProviderEvent:
    """A change reported by a wallet provider."""

    type: ProviderEventType
    value: Any


@dataclass(frozen=True)
class ClassifiedError:
    """A raw error together with its display category."""

    kind: ErrorKind
    error: Exception

    @property
    def message(self) -> str:
        from staking_toolkit.connectors.classifier import get_error_message

        return get_error_message(self.kind)


@dataclass(frozen=True)
class WalletSession:
    """Signing account and provider obtained by activating a connector."""

    kind: ConnectorKind
    account: str
    chain_id: int
    web3_service: "Web3Service"


@dataclass(frozen=True)
class ConnectionState:
    """
    Snapshot of the wallet connection.

    At most one connector is activating and at most one is active. When an
    activation resolves the activating slot is cleared and either the
    connector becomes active or last_error is set.
    """

    active_connector: Optional[ConnectorKind] = None
    activating_connector: Optional[ConnectorKind] = None
    last_error: Optional[ClassifiedError] = None
    eager_attempt_completed: bool = False
    account: Optional[str] = None
    chain_id: Optional[int] = None
    network_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.active_connector is not None

    @property
    def is_activating(self) -> bool:
        return self.activating_connector is not None
