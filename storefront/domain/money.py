"""
Money helpers. Amounts are integers in local currency units.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union


def round_half_up(value: Union[Decimal, float, int]) -> int:
    """Round to the nearest integer, halves away from zero"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_local(source_price: Union[Decimal, float, int], multiplier: int) -> int:
    """Convert a source-currency price into local currency units"""
    return round_half_up(Decimal(str(source_price)) * multiplier)


def format_amount(amount: int, currency: str = "won") -> str:
    """1234567 -> '1,234,567 won'"""
    return f"{amount:,} {currency}"
