"""Fixed-point money helpers."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENTS = Decimal("0.01")


def to_money(value: Union[Decimal, str, int]) -> Decimal:
    """
    Quantize a value to 2 fractional digits.

    Floats are rejected; money must arrive as Decimal, string or int so no
    binary rounding leaks into stored balances.
    """
    if isinstance(value, float):
        raise TypeError("Money values must not be floats")
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
