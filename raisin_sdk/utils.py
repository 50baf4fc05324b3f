"""
Parsing helpers for user-supplied addresses and fund indices.
"""
from typing import Any, Union

from web3 import Web3

from .exceptions import InvalidAddressError, ValidationError
from .units import UINT256_MAX


def parse_address(value: Any) -> str:
    """
    Parse an address string into its checksummed form.

    Accepts lower-case, upper-case and correctly checksummed hex, with or
    without the 0x prefix. A mixed-case string with a wrong checksum is
    rejected.

    Raises:
        InvalidAddressError: If the value is not a valid address
    """
    if not isinstance(value, str):
        raise InvalidAddressError(f"Address must be a string, got {type(value).__name__}")
    text = value.strip()
    if not text.startswith(("0x", "0X")):
        text = "0x" + text
    if not Web3.is_address(text):
        raise InvalidAddressError(f"Invalid address: {value!r}")
    return Web3.to_checksum_address(text)


def parse_fund_index(value: Union[int, str]) -> int:
    """
    Parse a fund index.

    Only the shape is checked; whether the fund exists is up to the contract.
    """
    if isinstance(value, bool):
        raise ValidationError("Fund index must be an integer, got bool")
    if isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise ValidationError(f"Fund index must be a non-negative integer, got {value!r}")
        value = int(text)
    if not isinstance(value, int):
        raise ValidationError(f"Fund index must be an integer, got {type(value).__name__}")
    if value < 0 or value > UINT256_MAX:
        raise ValidationError(f"Fund index out of range: {value}")
    return value
