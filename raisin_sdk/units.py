"""
Conversion between human-readable decimal amounts and on-chain base units.

All arithmetic is done on integers; amounts never pass through a binary
floating-point value. An amount that carries more fractional digits than
the token's precision is rejected rather than rounded.
"""
from decimal import Decimal, InvalidOperation
from typing import Union

from .exceptions import AmountOverflowError, InvalidAmountError, InvalidPrecisionError

UINT256_MAX = 2 ** 256 - 1
MAX_DECIMALS = 255
ETHER_DECIMALS = 18

# uint256 values have at most 78 decimal digits
_UINT256_DIGITS = len(str(UINT256_MAX))

DecimalInput = Union[str, int, Decimal]


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise InvalidPrecisionError(f"Decimals must be an integer, got {type(decimals).__name__}")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise InvalidPrecisionError(f"Decimals must be between 0 and {MAX_DECIMALS}, got {decimals}")


def parse_amount(decimal_amount: DecimalInput) -> Decimal:
    """
    Validate a user-entered amount without knowing the token precision.

    Raises:
        InvalidAmountError: If the amount is negative, non-finite or malformed
    """
    # floats are refused: their binary value is not the number the user typed
    if isinstance(decimal_amount, bool) or isinstance(decimal_amount, float):
        raise InvalidAmountError(
            f"Amount must be given as a string, int or Decimal, got {type(decimal_amount).__name__}"
        )
    if isinstance(decimal_amount, Decimal):
        value = decimal_amount
    elif isinstance(decimal_amount, int):
        value = Decimal(decimal_amount)
    elif isinstance(decimal_amount, str):
        text = decimal_amount.strip()
        if not text:
            raise InvalidAmountError("Amount must not be empty")
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise InvalidAmountError(f"Not a decimal number: {decimal_amount!r}")
    else:
        raise InvalidAmountError(f"Unsupported amount type: {type(decimal_amount).__name__}")

    if not value.is_finite():
        raise InvalidAmountError(f"Amount must be finite, got {decimal_amount!r}")
    if value < 0:
        raise InvalidAmountError(f"Amount must not be negative, got {decimal_amount!r}")
    return value


def to_base_units(decimal_amount: DecimalInput, decimals: int) -> int:
    """
    Scale a decimal amount by 10**decimals into an integer amount.

    Args:
        decimal_amount: Amount as typed by the user ("1.5", 3, Decimal("0.25"))
        decimals: Token precision, 0 to 255

    Returns:
        The amount in the token's smallest unit

    Raises:
        InvalidPrecisionError: If decimals is out of range, or the amount has
            more fractional digits than decimals allows
        InvalidAmountError: If the amount is negative, non-finite or malformed
        AmountOverflowError: If the result does not fit in a uint256
    """
    _check_decimals(decimals)
    value = parse_amount(decimal_amount)

    _, digits, exponent = value.as_tuple()
    if not any(digits):
        return 0

    # Trailing zeros carry no value; dropping them keeps the coefficient short
    digits = list(digits)
    while digits[-1] == 0:
        digits.pop()
        exponent += 1

    shift = exponent + decimals
    if shift < 0:
        # the last digit is non-zero, so it lies below the token's smallest unit
        raise InvalidPrecisionError(
            f"Amount {decimal_amount} has more than {decimals} fractional digits"
        )
    if len(digits) + shift > _UINT256_DIGITS:
        raise AmountOverflowError(f"Amount {decimal_amount} exceeds uint256 at {decimals} decimals")
    result = int("".join(str(d) for d in digits)) * 10 ** shift

    if result > UINT256_MAX:
        raise AmountOverflowError(f"Amount {decimal_amount} exceeds uint256 at {decimals} decimals")
    return result


def from_base_units(amount: int, decimals: int) -> str:
    """
    Render an integer base-unit amount as a decimal string.

    Trailing fractional zeros are trimmed, and a whole number has no
    decimal point, so ``from_base_units(1_500_000, 6) == "1.5"``.
    """
    _check_decimals(decimals)
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(f"Base-unit amount must be an integer, got {type(amount).__name__}")
    if amount < 0:
        raise InvalidAmountError(f"Base-unit amount must not be negative, got {amount}")
    if amount > UINT256_MAX:
        raise AmountOverflowError(f"Base-unit amount {amount} exceeds uint256")

    whole, fraction = divmod(amount, 10 ** decimals)
    if fraction == 0:
        return str(whole)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{fraction_text}"
