"""ROI formula implementations.

Each function is a pure calculation with no side effects. All monetary
values are in SEK; ROI is expressed in percent (42 means 42 %).
"""

from __future__ import annotations

from typing import Iterable

from backend.models.report import LineItem

# Benefit figures are annual; payback is counted in months.
MONTHS_PER_YEAR = 12


def calc_roi_percentage(total_cost: float, total_benefit: float) -> float:
    """ROI_% = (benefit - cost) / cost x 100"""
    if total_cost <= 0:
        raise ValueError(f"total_cost must be positive, got {total_cost}")
    return (total_benefit - total_cost) / total_cost * 100


def calc_payback_period_months(total_cost: float, annual_benefit: float) -> float:
    """Payback = cost / (annual_benefit / 12), or 0 when either side is not positive."""
    if total_cost <= 0 or annual_benefit <= 0:
        return 0.0
    return total_cost / (annual_benefit / MONTHS_PER_YEAR)


def calc_line_item_total(items: Iterable[LineItem]) -> float:
    """Sum of the amounts of already-validated line items."""
    return float(sum(item.amount for item in items))


def calc_value_per_invested_krona(roi_percentage: float) -> float:
    """Kronor of value returned per krona invested: roi/100 + 1."""
    return roi_percentage / 100 + 1
