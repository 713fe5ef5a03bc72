from __future__ import annotations

"""18-decimal fixed-point helpers.

Integer floor division throughout; results match the on-ledger arithmetic bit
for bit, so there is no float anywhere in the accounting path.
"""

from lpgauge.ledger.constants import UNIT
from lpgauge.ledger.errors import DivisionByZero


def multiply_decimal(x: int, y: int) -> int:
    """x * y where y (or x) is UNIT-scaled."""
    return int(x) * int(y) // UNIT


def divide_decimal(x: int, y: int, *, what: str = "divide_decimal") -> int:
    """x / y returned as a UNIT-scaled fraction."""
    if int(y) == 0:
        raise DivisionByZero("zero_denominator", {"op": what, "numerator": int(x)})
    return int(x) * UNIT // int(y)


def mul_div(x: int, y: int, z: int, *, what: str = "mul_div") -> int:
    """x * y / z without intermediate rounding."""
    if int(z) == 0:
        raise DivisionByZero("zero_denominator", {"op": what, "numerator": int(x) * int(y)})
    return int(x) * int(y) // int(z)
