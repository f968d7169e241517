"""
Amount parsing and formatting shared by every producer.

Usage:
    from stackr.utils.money import format_currency, to_amount

    to_amount("300")          -> 300.0
    to_amount("1 200,50")     -> 1200.5
    format_currency(-45.5)    -> "$45.50"
"""
import math
from decimal import Decimal, InvalidOperation


def normalize_decimal_input(value: str) -> str:
    """Strip thousands separators and turn a decimal comma into a dot."""
    return value.strip().replace(" ", "").replace(",", ".")


def to_amount(value) -> float:
    """
    Coerce a raw amount (int / float / Decimal / str / None) to float.

    Empty or unparseable values count as 0.0, matching how partially filled
    records are treated everywhere in the engine.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, Decimal):
        return float(value)
    try:
        return float(Decimal(normalize_decimal_input(str(value))))
    except (InvalidOperation, ValueError):
        return 0.0


def format_currency(amount) -> str:
    """Absolute value with two decimals and a dollar sign."""
    return f"${abs(to_amount(amount)):.2f}"


def percent_change(old: float, new: float) -> float:
    """
    Percentage change from old to new, rounded to one decimal.

    A zero baseline reports 100 when the new value is positive, else 0.
    """
    if old == 0:
        return 100.0 if new > 0 else 0.0
    return round((new - old) / old * 100, 1)


def round_half_up(value: float) -> int:
    """Half-up rounding for user-facing percentages; round() rounds half to even."""
    return int(math.floor(value + 0.5))
