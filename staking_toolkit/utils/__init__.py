from staking_toolkit.utils.blockchain import (
    from_base_unit_amount,
    to_base_unit_amount,
    to_decimal,
    to_padded_hex,
)

__all__ = [
    "to_padded_hex",
    "to_decimal",
    "to_base_unit_amount",
    "from_base_unit_amount",
]
