"""
Display Formatting

Amounts are shown the way pt-PT formats euros: comma decimals, a
non-breaking space as thousands separator (only from five integer digits
up) and the symbol after the number, e.g. "1234,50 €", "12 345,00 €".
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from budget_tracker.models.expense import MONTH_NAMES


NBSP = "\u00a0"


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        return Decimal("0")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")
    return number if number.is_finite() else Decimal("0")


def format_eur(value: Any, symbol: str = "€") -> str:
    """Format an amount; anything non-numeric or non-finite shows as zero."""
    number = _to_decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if number < 0 else ""
    integer_part, _, fraction = f"{abs(number):.2f}".partition(".")

    if len(integer_part) >= 5:
        groups = []
        while integer_part:
            groups.insert(0, integer_part[-3:])
            integer_part = integer_part[:-3]
        integer_part = NBSP.join(groups)

    return f"{sign}{integer_part},{fraction}{NBSP}{symbol}"


def month_name(month: int) -> str:
    """Name of a zero-based month."""
    return MONTH_NAMES[int(month)]
