"""
Helper utilities
"""
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce a possibly-null numeric field to float"""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return float(value)
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    # NaN never equals itself
    if result != result:
        return default
    return result


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers"""
    try:
        return numerator / denominator if denominator != 0 else default
    except (TypeError, ZeroDivisionError):
        return default


def mean(values: Iterable[float], default: float = 0.0) -> float:
    """Arithmetic mean, default when empty"""
    values = list(values)
    if not values:
        return default
    return sum(values) / len(values)


def percent_of(amount: float, base: float) -> float:
    """amount as a percentage of base, 0 when base is not positive"""
    return (amount / base) * 100 if base > 0 else 0.0


def month_key(value: date) -> str:
    """YYYY-MM key for a date"""
    return f"{value.year:04d}-{value.month:02d}"


def round_or_none(value: Optional[float], digits: int = 2) -> Optional[float]:
    """Round to N decimals, keep None"""
    if value is None:
        return None
    return round(value, digits)
