"""Fixed-point money helpers.

All amounts are ``Decimal`` quantised to cents with ROUND_HALF_UP.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, floats, strings and None to ``Decimal`` without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else "0"))


def round_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
