"""
Unit tests for retry backoff on the shared read paths.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from staking_toolkit.shared.exceptions import (
    ContractRegistryException,
    GasOracleException,
    InvalidInputException,
)
from staking_toolkit.shared.retry import (
    HTTP_RETRY_CONFIG,
    RetryConfig,
    retry_sync_operation,
)


class TestAddressBookRetry:
    def test_recovers_after_transient_failures(self):
        fetch = MagicMock(
            side_effect=[
                ContractRegistryException("HTTP 503"),
                httpx.ConnectError("refused"),
                {"1": {}},
            ]
        )

        with patch("staking_toolkit.shared.retry.time.sleep") as sleep:
            assert retry_sync_operation(fetch, **HTTP_RETRY_CONFIG.kwargs()) == {
                "1": {}
            }

        assert fetch.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    def test_backoff_is_capped(self):
        fetch = MagicMock(side_effect=ContractRegistryException("HTTP 503"))
        config = RetryConfig(max_attempts=5, base_delay=1.0, max_delay=3.0)

        with patch("staking_toolkit.shared.retry.time.sleep") as sleep:
            with pytest.raises(ContractRegistryException):
                retry_sync_operation(fetch, **config.kwargs())

        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0, 3.0, 3.0]

    def test_non_retryable_is_raised_at_once(self):
        fetch = MagicMock(side_effect=InvalidInputException("bad chain"))

        with patch("staking_toolkit.shared.retry.time.sleep") as sleep:
            with pytest.raises(InvalidInputException):
                retry_sync_operation(fetch, **HTTP_RETRY_CONFIG.kwargs())

        assert fetch.call_count == 1
        sleep.assert_not_called()


class TestGasStationRetry:
    @pytest.mark.asyncio
    async def test_decorator_retries_oracle_errors(self):
        fetch = AsyncMock(side_effect=[GasOracleException("HTTP 502"), 42])

        @HTTP_RETRY_CONFIG.decorator()
        async def get_gas_price():
            return await fetch()

        with patch("staking_toolkit.shared.retry.asyncio.sleep", AsyncMock()):
            assert await get_gas_price() == 42

        assert fetch.call_count == 2

    @pytest.mark.asyncio
    async def test_custom_retryable_set(self):
        fetch = AsyncMock(side_effect=GasOracleException("HTTP 502"))
        config = RetryConfig(max_attempts=3, retryable_exceptions=(ValueError,))

        @config.decorator()
        async def get_gas_price():
            return await fetch()

        with pytest.raises(GasOracleException):
            await get_gas_price()

        assert fetch.call_count == 1
