"""Currency rounding shared by pricing and earnings."""

from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value: float) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: float, percent: float) -> int:
    return round_half_up(amount * percent / 100)


def to_float(value) -> float | None:
    """Numeric columns come back as Decimal; the engines work in float."""
    return float(value) if value is not None else None
