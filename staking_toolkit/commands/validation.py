from eth_utils import is_address, to_checksum_address

from staking_toolkit.shared.constants import GlobalConstants
from staking_toolkit.staking.models import StakeAllocation
from staking_toolkit.utils.blockchain import to_decimal, to_padded_hex


def validate_eth_address(address: str, param_name: str = "address") -> str:
    """Validate and return checksum ethereum address"""
    if not address or not isinstance(address, str):
        raise ValueError(
            f"Invalid {param_name}: address must be a non-empty string"
        )
    if not is_address(address):
        raise ValueError(
            f"Invalid {param_name}: {address} is not a valid Ethereum address"
        )
    return to_checksum_address(address)


def validate_chain_id(chain_id: int) -> None:
    """Validate chain ID"""
    valid_chain_ids = set(GlobalConstants.SUPPORTED_CHAIN_IDS)
    if chain_id not in valid_chain_ids:
        raise ValueError(
            f"Invalid chain_id: {chain_id}. Must be one of {valid_chain_ids}"
        )


def parse_allocation(value: str) -> StakeAllocation:
    """Parse a POOL_ID:AMOUNT command line argument"""
    pool_id, sep, amount = value.partition(":")
    if not sep or not pool_id or not amount:
        raise ValueError(
            f"Invalid allocation: {value!r}. Expected POOL_ID:AMOUNT"
        )
    to_padded_hex(pool_id)
    decimal_amount = to_decimal(amount)
    if decimal_amount <= 0:
        raise ValueError(f"Invalid allocation: amount must be positive in {value!r}")
    return StakeAllocation(pool_id=pool_id, zrx_amount=decimal_amount)
