"""
Gas oracle clients.

The stake flow asks an oracle for the gas price to submit with and an
estimate of how long confirmation will take. Two sources are supported:

- GasStationOracle: an HTTP endpoint in the ETH Gas Station format, where
  prices are tenths of a gwei and waits are minutes. Payloads already in
  wei / milliseconds (``gasPriceInWei`` / ``estimatedTimeMs``) are accepted
  as-is.
- NodeGasOracle: the connected node's ``eth_gasPrice`` with a fixed estimate.
"""

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from staking_toolkit.shared.constants import SubmissionConstants
from staking_toolkit.shared.exceptions import GasOracleException
from staking_toolkit.shared.logging import get_logger
from staking_toolkit.shared.retry import HTTP_RETRY_CONFIG
from staking_toolkit.shared.services.http_client import get_async_client
from staking_toolkit.shared.services.web3_service import Web3Service
from staking_toolkit.shared.types import GasInfo

_logger = get_logger(__name__)

GWEI_IN_WEI = 10**9

# speed -> (price key, wait key)
GAS_STATION_SPEEDS = {
    "fastest": ("fastest", "fastestWait"),
    "fast": ("fast", "fastWait"),
    "average": ("average", "avgWait"),
    "safeLow": ("safeLow", "safeLowWait"),
}


class GasOracle:
    """Base class for gas oracle clients."""

    async def get_gas_info(self) -> GasInfo:
        raise NotImplementedError


class GasStationOracle(GasOracle):
    """Query an ETH Gas Station style HTTP endpoint."""

    def __init__(
        self,
        url: str = SubmissionConstants.GAS_INFO_URL,
        speed: str = SubmissionConstants.GAS_SPEED,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if speed not in GAS_STATION_SPEEDS:
            raise ValueError(
                f"Invalid gas speed: {speed}. Must be one of {set(GAS_STATION_SPEEDS)}"
            )
        self.url = url
        self.speed = speed
        self._client = client

    @HTTP_RETRY_CONFIG.decorator()
    async def get_gas_info(self) -> GasInfo:
        client = self._client or get_async_client()
        response = await client.get(self.url)

        if response.status_code >= 500 or response.status_code == 429:
            raise GasOracleException(
                f"Gas oracle returned HTTP {response.status_code}"
            )
        if response.status_code >= 400:
            # Client errors will not go away on retry
            raise ValueError(
                f"Gas oracle rejected the request: HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise GasOracleException(f"Gas oracle returned invalid JSON: {e}")

        gas_info = self.parse(payload, self.speed)
        _logger.debug(
            f"Gas info ({self.speed}): {gas_info.gas_price_in_wei} wei, "
            f"~{gas_info.estimated_time_ms} ms"
        )
        return gas_info

    @staticmethod
    def parse(payload: Dict[str, Any], speed: str = "fast") -> GasInfo:
        """Convert an oracle payload into GasInfo."""
        if not isinstance(payload, dict):
            raise GasOracleException("Gas oracle payload is not an object")

        try:
            if "gasPriceInWei" in payload:
                return GasInfo(
                    gas_price_in_wei=int(Decimal(str(payload["gasPriceInWei"]))),
                    estimated_time_ms=int(
                        Decimal(str(payload.get("estimatedTimeMs", 0)))
                    ),
                )

            price_key, wait_key = GAS_STATION_SPEEDS[speed]
            # Gas Station reports prices in tenths of a gwei
            price_gwei = Decimal(str(payload[price_key])) / 10
            wait_minutes = Decimal(str(payload[wait_key]))
        except (KeyError, InvalidOperation, TypeError) as e:
            raise GasOracleException(f"Gas oracle payload is malformed: {e}")

        return GasInfo(
            gas_price_in_wei=int(price_gwei * GWEI_IN_WEI),
            estimated_time_ms=int(wait_minutes * 60 * 1000),
        )


class NodeGasOracle(GasOracle):
    """Use eth_gasPrice from a connected node or wallet provider."""

    def __init__(
        self,
        web3_service: Web3Service,
        estimated_time_ms: int = SubmissionConstants.DEFAULT_ESTIMATED_TIME_MS,
    ):
        self.web3_service = web3_service
        self.estimated_time_ms = estimated_time_ms

    @HTTP_RETRY_CONFIG.decorator()
    async def get_gas_info(self) -> GasInfo:
        # Use executor to avoid blocking the event loop
        loop = asyncio.get_running_loop()
        gas_price = await loop.run_in_executor(
            None, self.web3_service.get_gas_price
        )
        return GasInfo(
            gas_price_in_wei=int(gas_price),
            estimated_time_ms=self.estimated_time_ms,
        )
