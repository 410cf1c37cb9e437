"""Swedish-locale formatting shared by the JSON views, conclusions and PDF."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

# sv-SE groups thousands with a no-break space and uses U+2212 as minus.
GROUP_SEPARATOR = "\u00a0"
MINUS_SIGN = "\u2212"
DAYS_PER_MONTH = 30


def _is_blank(value: Optional[float]) -> bool:
    return value is None or not math.isfinite(value)


def round_half_up(value: float, decimals: int = 0) -> float:
    """Round like the browser does (ties away from zero), not banker's rounding."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def format_number(value: Optional[float], decimals: int = 0) -> str:
    """Format with sv-SE grouping and a decimal comma."""
    if _is_blank(value):
        return "0"
    rounded = round_half_up(value, decimals)
    text = f"{abs(rounded):,.{decimals}f}"
    text = text.replace(",", GROUP_SEPARATOR).replace(".", ",")
    if rounded < 0:
        return f"{MINUS_SIGN}{text}"
    return text


def format_currency(value: Optional[float], abbreviated: bool = False) -> str:
    """Whole kronor, e.g. ``"1 234 567 kr"``; ``"1,2 mkr"`` when abbreviated."""
    if _is_blank(value):
        return "0 kr"
    if abbreviated and abs(value) >= 1_000_000:
        return f"{format_number(value / 1_000_000, 1)} mkr"
    return f"{format_number(value)} kr"


def format_percent(value: Optional[float]) -> str:
    """Format a percentage number (42 means 42 %) with at most one decimal."""
    if _is_blank(value):
        return "0%"
    rounded = round_half_up(value, 1)
    decimals = 0 if rounded == int(rounded) else 1
    return f"{format_number(rounded, decimals)}%"


def format_months(value: Optional[float]) -> str:
    """Human-readable duration for a fractional month count.

    Under one month is shown in days, up to a year in months with one
    decimal, and from a year on as years plus whole months.
    """
    if _is_blank(value):
        return "0 dagar"
    months = round_half_up(value, 1)

    if months < 1:
        days = max(0, int(round_half_up(months * DAYS_PER_MONTH)))
        return "1 dag" if days == 1 else f"{days} dagar"

    if months < 12:
        return f"{format_number(months, 1)} månader"

    years = int(months // 12)
    remainder = int(round_half_up(months - years * 12))
    if remainder >= 12:
        years += 1
        remainder -= 12
    if remainder == 0:
        return f"{years} år"
    unit = "månad" if remainder == 1 else "månader"
    return f"{years} år och {remainder} {unit}"
