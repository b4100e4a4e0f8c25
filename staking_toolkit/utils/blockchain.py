from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from eth_utils import is_hex, remove_0x_prefix

UINT256_MAX = 2**256 - 1


def to_padded_hex(value: Union[int, str]) -> str:
    """Normalize a decimal or hex identifier to a 32-byte 0x-prefixed hex string"""
    if isinstance(value, bool):
        raise ValueError(f"Invalid identifier: {value!r}")

    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            if not is_hex(text) or len(text) == 2:
                raise ValueError(f"Invalid hex identifier: {value!r}")
            number = int(remove_0x_prefix(text), 16)
        elif text.isdigit():
            number = int(text)
        else:
            raise ValueError(f"Invalid identifier: {value!r}")
    else:
        raise ValueError(f"Invalid identifier type: {type(value).__name__}")

    if number < 0 or number > UINT256_MAX:
        raise ValueError(f"Identifier out of range: {value!r}")

    return "0x" + format(number, "x").zfill(64)


def to_decimal(amount: Union[Decimal, int, str, float]) -> Decimal:
    """Convert a human-entered amount to Decimal without binary float error"""
    if isinstance(amount, bool):
        raise ValueError(f"Invalid amount: {amount!r}")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    return value


def to_base_unit_amount(
    amount: Union[Decimal, int, str, float], decimals: int
) -> int:
    """Convert a token amount in human units to integer base units"""
    value = to_decimal(amount)
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"Amount {value} has more than {decimals} decimal places"
            )
        base_units = int(scaled)
    if abs(base_units) > UINT256_MAX:
        raise ValueError(f"Amount {value} does not fit in uint256")
    return base_units


def from_base_unit_amount(amount: int, decimals: int) -> Decimal:
    """Convert integer base units back to a human-unit Decimal"""
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(int(amount)).scaleb(-decimals).normalize()
