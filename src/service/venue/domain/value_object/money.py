from decimal import ROUND_HALF_UP, Decimal
from typing import Union


CENT = Decimal('0.01')
ZERO = Decimal('0.00')

MoneyLike = Union[Decimal, int, float, str]


def to_money(value: MoneyLike) -> Decimal:
    """Quantize to cents, half-up; floats go through str() to avoid binary noise"""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
