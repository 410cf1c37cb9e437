"""Report data structures shared by the JSON views and the PDF renderer."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Optional


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


@dataclass(frozen=True)
class SharedFields:
    """Organization identity shared across all forms."""

    organization_name: str = ""
    contact_person: str = ""
    start_date: str = ""
    end_date: str = ""
    time_period: str = ""

    @property
    def is_empty(self) -> bool:
        return not (
            self.organization_name
            or self.contact_person
            or self.start_date
            or self.end_date
            or self.time_period
        )

    @property
    def date_range(self) -> str:
        """'start - end' when both dates are known, else the stored period."""
        if self.start_date and self.end_date:
            return f"{self.start_date} - {self.end_date}"
        return self.time_period or self.start_date or self.end_date

    def to_dict(self) -> dict[str, str]:
        return {
            "organizationName": self.organization_name,
            "contactPerson": self.contact_person,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "timePeriod": self.date_range,
        }


@dataclass(frozen=True)
class LineItem:
    """A cost or benefit row: description plus amount in SEK."""

    description: str
    amount: float

    def to_dict(self) -> dict[str, Any]:
        return {"description": self.description, "amount": self.amount}


@dataclass(frozen=True)
class InterventionBreakdown:
    """Per-intervention cost split from Form G."""

    name: str
    description: str
    external_cost: float
    internal_cost: float
    total_cost: float

    def to_dict(self) -> dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}


# Numeric report fields; each is a finite float after construction.
NUMERIC_FIELDS: tuple[str, ...] = (
    "total_cost",
    "total_benefit",
    "roi",
    "payback_period",
    "total_mental_health_cost",
    "reduced_stress_percentage",
    "total_cost_alt2",
    "total_benefit_alt2",
    "roi_alt2",
    "total_mental_health_cost_alt2",
    "reduced_stress_percentage_alt2",
    "total_cost_alt3",
    "total_benefit_alt3",
    "roi_alt3",
    "total_mental_health_cost_alt3",
    "min_effect_for_break_even_alt3",
    "stress_percentage",
    "production_loss_value",
    "sick_leave_value",
    "number_of_employees",
)


@dataclass(frozen=True)
class ROIReportData:
    """Normalized output of the aggregation pipeline.

    Numbers default to 0.0 and strings to "" so consumers can format and
    draw without null checks. ``missing_fields`` names the numeric fields
    that no form supplied.
    """

    shared_fields: SharedFields

    # Variant 1 -- actual ROI
    total_cost: float = 0.0
    total_benefit: float = 0.0
    roi: float = 0.0
    payback_period: float = 0.0
    total_mental_health_cost: float = 0.0
    reduced_stress_percentage: float = 0.0

    # Variant 2 -- max intervention cost for break-even
    total_cost_alt2: float = 0.0
    total_benefit_alt2: float = 0.0
    roi_alt2: float = 0.0
    total_mental_health_cost_alt2: float = 0.0
    reduced_stress_percentage_alt2: float = 0.0

    # Variant 3 -- min effect for break-even
    total_cost_alt3: float = 0.0
    total_benefit_alt3: float = 0.0
    roi_alt3: float = 0.0
    total_mental_health_cost_alt3: float = 0.0
    min_effect_for_break_even_alt3: float = 0.0

    # Narrative
    time_period: str = ""
    current_situation: str = ""
    cause_analysis: str = ""
    intervention_purpose: str = ""
    goals_description: str = ""
    target_group: str = ""
    intervention_description: str = ""
    implementation_plan: str = ""
    recommendation: str = ""

    # Lists
    intervention_costs: list[LineItem] = field(default_factory=list)
    benefit_areas: list[LineItem] = field(default_factory=list)
    interventions_array: list[str] = field(default_factory=list)
    implementation_plan_array: list[str] = field(default_factory=list)
    intervention_breakdown: list[InterventionBreakdown] = field(default_factory=list)

    # Current-situation statistics
    stress_percentage: float = 0.0
    production_loss_value: float = 0.0
    sick_leave_value: float = 0.0

    # Form D extras
    number_of_employees: float = 0.0
    contact_email: str = ""
    contact_phone: str = ""

    missing_fields: list[str] = field(default_factory=list)
    used_fallback: bool = False

    def is_missing(self, field_name: str) -> bool:
        return field_name in self.missing_fields

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys the web views consume."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "missing_fields":
                value = [_camel(name) for name in value]
            elif isinstance(value, SharedFields):
                value = value.to_dict()
            elif isinstance(value, list):
                value = [v.to_dict() if hasattr(v, "to_dict") else v for v in value]
            result[_camel(f.name)] = value
        return result


@dataclass(frozen=True)
class OrganizationInfo:
    """Freshness-critical identity subset re-read from Form D."""

    organization_name: str = ""
    contact_person: str = ""
    start_date: str = ""
    end_date: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.organization_name or self.contact_person or self.start_date or self.end_date)
