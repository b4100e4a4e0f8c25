"""
Shared type definitions used across the staking toolkit.
"""

from dataclasses import dataclass
from typing import TypedDict

# =============================================================================
# GAS
# =============================================================================


@dataclass(frozen=True)
class GasInfo:
    """Gas price to submit with and the oracle's confirmation estimate."""

    gas_price_in_wei: int
    estimated_time_ms: int


# =============================================================================
# ACCOUNT TYPES
# =============================================================================


class AccountInfoDict(TypedDict):
    """Balances of a connected account, in base units."""

    address: str  # Checksummed owner address
    chain_id: int  # Chain the balances were read from
    eth_balance: int  # Wei
    zrx_balance: int  # ZRX base units
    zrx_allowance: int  # Allowance granted to the ERC20 proxy
