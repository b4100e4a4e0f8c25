"""
Exception hierarchy for the Staking Toolkit.

Exception Categories:
- RetryableException: Transient failures that may succeed on retry (RPC, HTTP)
- NonRetryableException: Permanent failures that won't benefit from retry
- ConfigurationException: Startup/config errors that prevent operation

Connector errors are raised by wallet connectors during activation or when
a signature is requested. Each connector raises its own concrete types so
that they can be classified by exact type for display.
"""

from typing import Iterable, Optional


class RetryableException(Exception):
    """
    Base class for exceptions that may succeed on retry.

    Use for transient failures like:
    - RPC timeouts
    - Rate limiting
    - Temporary network issues
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NonRetryableException(Exception):
    """
    Base class for exceptions that won't benefit from retry.

    Use for permanent failures like:
    - Invalid input data
    - Rejected signatures
    - Reverted transactions
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationException(NonRetryableException):
    """
    Exception for configuration/startup errors.

    Use when:
    - Required environment variables are missing
    - Invalid configuration values
    - No contract deployment is known for a chain
    """

    pass


class GasOracleException(RetryableException):
    """Gas oracle could not be reached or returned unusable data."""

    pass


class ContractRegistryException(RetryableException):
    """The published contract address book could not be fetched."""

    pass


class InvalidInputException(NonRetryableException):
    """
    Stake batch could not be built from the supplied allocations.

    Raised before any call is encoded, so no partial batch is ever produced.
    """

    pass


class SubmissionFailedException(NonRetryableException):
    """Broadcast or confirmation of a stake transaction failed."""

    def __init__(self, message: str, transaction_hash: Optional[str] = None):
        super().__init__(message)
        self.transaction_hash = transaction_hash


class SubmissionTimeoutException(SubmissionFailedException):
    """A signature or confirmation wait exceeded its bound."""

    pass


# =============================================================================
# CONNECTOR ERRORS
# =============================================================================


class ConnectorException(NonRetryableException):
    """Base class for errors raised by wallet connectors."""

    pass


class NoEthereumProviderError(ConnectorException):
    """No wallet provider could be reached for the connector."""

    def __init__(self, message: str = "No Ethereum provider was found"):
        super().__init__(message)


class UnsupportedChainIdError(ConnectorException):
    """The wallet is connected to a chain the application does not support."""

    def __init__(self, chain_id: int, supported_chain_ids: Iterable[int]):
        self.chain_id = chain_id
        self.supported_chain_ids = tuple(supported_chain_ids)
        super().__init__(
            f"Unsupported chain id: {chain_id}, "
            f"supported: {', '.join(str(c) for c in self.supported_chain_ids)}"
        )


class UserRejectedRequestError(ConnectorException):
    """The user declined an account or signature request."""

    def __init__(self, message: str = "The user rejected the request."):
        super().__init__(message)


class InjectedUserRejectedRequestError(UserRejectedRequestError):
    pass


class WalletConnectUserRejectedRequestError(UserRejectedRequestError):
    pass


class WalletLinkUserRejectedRequestError(UserRejectedRequestError):
    pass
