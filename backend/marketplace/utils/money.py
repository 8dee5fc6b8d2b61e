from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple, Union

CENT = Decimal("0.01")

Number = Union[Decimal, str, int]


def to_decimal(value: Number) -> Decimal:
    """Exact decimal from a DB value or string; floats go through ``str``."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_lines(lines: Iterable[Tuple[Number, int]]) -> Decimal:
    """Sum of unit price x quantity, rounded to cents once at the end."""
    total = Decimal("0")
    for price, quantity in lines:
        total += to_decimal(price) * quantity
    return quantize_money(total)
