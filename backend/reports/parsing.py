"""Validating parse steps for raw form JSON.

Form documents are free-form; everything the pipeline consumes goes
through these helpers so that downstream code only sees typed values.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

from backend.models.report import InterventionBreakdown, LineItem
from backend.models.variants import ActualROI, MaxCostBreakEven, MinEffectBreakEven

logger = logging.getLogger(__name__)


def as_number(value: Any) -> Optional[float]:
    """Coerce a stored value to a finite float, or None if it is not numeric.

    Numeric strings such as ``"120 000"`` or ``"4,5"`` are accepted since
    the form inputs store what the user typed.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.replace("\u00a0", "").replace(" ", "").replace(",", ".")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def as_list(value: Any) -> list[Any]:
    """Arrays come back from the REST API as lists, or as dicts when sparse."""
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value[key] for key in sorted(value, key=_index_key)]
    return []


def _index_key(key: str) -> tuple[int, Any]:
    return (0, int(key)) if key.isdigit() else (1, key)


def non_empty_strings(value: Any) -> list[str]:
    return [item for item in as_list(value) if isinstance(item, str) and item.strip()]


def parse_line_items(raw: Any) -> list[LineItem]:
    """Keep entries with a string description and a numeric amount."""
    items: list[LineItem] = []
    entries = as_list(raw)
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        description = entry.get("description")
        amount = entry.get("amount")
        if not isinstance(description, str):
            continue
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            continue
        if not math.isfinite(amount):
            continue
        items.append(LineItem(description=description, amount=float(amount)))
    if len(items) < len(entries):
        logger.warning(f"Dropped {len(entries) - len(items)} invalid line item(s)")
    return items


def parse_intervention_breakdown(form_g: Any) -> list[InterventionBreakdown]:
    """Per-intervention external/internal cost split from Form G."""
    if not isinstance(form_g, dict):
        return []
    result: list[InterventionBreakdown] = []
    for entry in as_list(form_g.get("interventions")):
        if not isinstance(entry, dict):
            continue
        name = as_text(entry.get("name")).strip()
        if not name:
            continue
        rows = [row for row in as_list(entry.get("costs")) if isinstance(row, dict)]
        external = as_number(entry.get("totalExternalCost"))
        if external is None:
            external = sum(as_number(row.get("externalCost")) or 0.0 for row in rows)
        internal = as_number(entry.get("totalInternalCost"))
        if internal is None:
            internal = sum(as_number(row.get("internalCost")) or 0.0 for row in rows)
        total = as_number(entry.get("totalCost"))
        if total is None:
            total = external + internal
        external, internal, total = (
            value if math.isfinite(value) else 0.0 for value in (external, internal, total)
        )
        result.append(
            InterventionBreakdown(
                name=name,
                description=as_text(entry.get("description")),
                external_cost=external,
                internal_cost=internal,
                total_cost=total,
            )
        )
    return result


def parse_roi_variants(
    form_j: dict[str, Any],
) -> tuple[ActualROI, MaxCostBreakEven, MinEffectBreakEven]:
    """Split the flat Form J document into its three result variants."""
    actual = ActualROI(
        total_cost=as_number(form_j.get("totalInterventionCostAlt1")),
        total_benefit=as_number(form_j.get("economicBenefitAlt1")),
        roi=as_number(form_j.get("roiPercentageAlt1")),
        total_mental_health_cost=as_number(form_j.get("totalCostMentalHealthAlt1")),
        reduced_stress_percentage=as_number(form_j.get("reducedStressPercentageAlt1")),
    )
    max_cost = MaxCostBreakEven(
        max_intervention_cost=as_number(form_j.get("maxInterventionCostAlt2")),
        economic_benefit=actual.total_benefit,
        total_mental_health_cost=as_number(form_j.get("totalCostMentalHealthAlt2")),
        reduced_stress_percentage=as_number(form_j.get("reducedStressPercentageAlt2")),
    )
    min_effect = MinEffectBreakEven(
        total_cost=as_number(form_j.get("totalInterventionCostAlt3")),
        total_mental_health_cost=as_number(form_j.get("totalCostMentalHealthAlt3")),
        min_effect_for_break_even=as_number(form_j.get("minEffectForBreakEvenAlt3")),
    )
    return actual, max_cost, min_effect
