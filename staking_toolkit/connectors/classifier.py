"""Map connector errors to user-facing categories."""

from typing import Dict, Type

from staking_toolkit.connectors.models import ErrorKind
from staking_toolkit.shared.exceptions import (
    InjectedUserRejectedRequestError,
    NoEthereumProviderError,
    UnsupportedChainIdError,
    UserRejectedRequestError,
    WalletConnectUserRejectedRequestError,
    WalletLinkUserRejectedRequestError,
)
from staking_toolkit.shared.logging import get_logger

_logger = get_logger(__name__)

# Matched on the exact type; subclasses are not implied
_CONNECTOR_ERROR_KINDS: Dict[Type[Exception], ErrorKind] = {
    NoEthereumProviderError: ErrorKind.NO_PROVIDER_DETECTED,
    UnsupportedChainIdError: ErrorKind.UNSUPPORTED_NETWORK,
    UserRejectedRequestError: ErrorKind.USER_REJECTED,
    InjectedUserRejectedRequestError: ErrorKind.USER_REJECTED,
    WalletConnectUserRejectedRequestError: ErrorKind.USER_REJECTED,
    WalletLinkUserRejectedRequestError: ErrorKind.USER_REJECTED,
}

_ERROR_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.NO_PROVIDER_DETECTED: (
        "No Ethereum wallet provider detected. Start a local signer such as "
        "Frame or configure STAKING_INJECTED_PROVIDER."
    ),
    ErrorKind.UNSUPPORTED_NETWORK: "You're connected to an unsupported network.",
    ErrorKind.USER_REJECTED: (
        "Please authorize this application to access your Ethereum account."
    ),
    ErrorKind.INVALID_INPUT: "The stake could not be prepared from the given amounts.",
    ErrorKind.SUBMISSION_FAILED: "The stake transaction failed. Check the logs for details.",
    ErrorKind.UNKNOWN: "An unknown error occurred. Check the logs for more details.",
}


def is_connector_error(error: Exception) -> bool:
    return type(error) in _CONNECTOR_ERROR_KINDS


def classify_connector_error(error: Exception) -> ErrorKind:
    """Classify a connector error; unmatched errors are logged as UNKNOWN."""
    kind = _CONNECTOR_ERROR_KINDS.get(type(error))
    if kind is None:
        _logger.error(
            f"Unclassified connector error {type(error).__name__}: {error}"
        )
        return ErrorKind.UNKNOWN
    return kind


def get_error_message(kind: ErrorKind) -> str:
    return _ERROR_MESSAGES[kind]
