"""
Retry utilities for handling transient failures.

This module provides decorators and utilities for retrying operations
with configurable backoff strategies.

Exception Handling:
- By default, retries on RetryableException and its subclasses
- NonRetryableException is never retried (propagates immediately)
- Can customize retryable_exceptions per call site

Only reads are retried. Transaction sends must never go through these
helpers since a retried send could broadcast twice.
"""

import asyncio
import logging
import time
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import httpx
from web3.exceptions import BlockNotFound, TransactionNotFound

from staking_toolkit.shared.exceptions import RetryableException

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Default retryable exceptions (network/RPC related + RetryableException hierarchy)
DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    RetryableException,  # Includes GasOracleException, ContractRegistryException
    ConnectionError,
    TimeoutError,
    OSError,  # requests connection errors raised by HTTPProvider
    httpx.TransportError,
    TransactionNotFound,
    BlockNotFound,
)


def _backoff_delay(
    attempt: int, base_delay: float, max_delay: float, exponential: bool
) -> float:
    if exponential:
        return min(base_delay * (2**attempt), max_delay)
    return base_delay


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
) -> Callable:
    """
    Decorator for retrying async functions with exponential backoff.

    Args:
        max_attempts: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay between retries in seconds (default: 1.0)
        max_delay: Maximum delay between retries in seconds (default: 30.0)
        exponential: Use exponential backoff (default: True)
        retryable_exceptions: Tuple of exception types to retry on
        on_retry: Optional callback called on each retry with (exception, attempt)

    Returns:
        Decorated async function with retry logic

    Example:
        @with_retry(max_attempts=3, base_delay=1.0)
        async def fetch_gas_info():
            ...
    """
    if retryable_exceptions is None:
        retryable_exceptions = DEFAULT_RETRYABLE_EXCEPTIONS

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception: Optional[Exception] = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e

                    if attempt < max_attempts - 1:
                        delay = _backoff_delay(
                            attempt, base_delay, max_delay, exponential
                        )

                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for "
                            f"{func.__name__}: {e}. Retrying in {delay:.1f}s..."
                        )

                        if on_retry:
                            on_retry(e, attempt + 1)

                        await asyncio.sleep(delay)

            # All attempts exhausted
            if last_exception:
                raise last_exception
            raise RuntimeError(
                "Unexpected state: no exception but all attempts exhausted"
            )

        return wrapper

    return decorator


def retry_sync_operation(
    operation: Callable[..., T],
    *args: Any,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    operation_name: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """
    Retry a synchronous operation with configurable backoff.

    Used for blocking reads such as the contract address book fetch.
    """
    if retryable_exceptions is None:
        retryable_exceptions = DEFAULT_RETRYABLE_EXCEPTIONS

    name = operation_name or getattr(operation, "__name__", "operation")
    last_exception: Optional[Exception] = None

    for attempt in range(max_attempts):
        try:
            return operation(*args, **kwargs)
        except retryable_exceptions as e:
            last_exception = e

            if attempt < max_attempts - 1:
                delay = _backoff_delay(
                    attempt, base_delay, max_delay, exponential
                )

                logger.warning(
                    f"Attempt {attempt + 1}/{max_attempts} failed for "
                    f"{name}: {e}. Retrying in {delay:.1f}s..."
                )

                time.sleep(delay)

    if last_exception:
        raise last_exception
    raise RuntimeError(
        "Unexpected state: no exception but all attempts exhausted"
    )


class RetryConfig:
    """
    Configuration class for retry behavior.

    Can be used to share retry settings across multiple operations.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential: bool = True,
        retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential = exponential
        self.retryable_exceptions = (
            retryable_exceptions or DEFAULT_RETRYABLE_EXCEPTIONS
        )

    def decorator(self) -> Callable:
        """Create a with_retry decorator using this config."""
        return with_retry(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exponential=self.exponential,
            retryable_exceptions=self.retryable_exceptions,
        )

    def kwargs(self) -> dict:
        """Keyword arguments for retry_sync_operation."""
        return {
            "max_attempts": self.max_attempts,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "exponential": self.exponential,
            "retryable_exceptions": self.retryable_exceptions,
        }


# Shared by the gas station and address book fetches
HTTP_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay=0.5,
    max_delay=5.0,
    exponential=True,
)
