"""ROI aggregation pipeline -- form store in, one ROIReportData out.

Forms A, B, C, D, E, G and J are read concurrently, then applied in a
fixed order. Later steps overwrite earlier values only under the
conditions documented on each step. Values stay ``None`` while the
draft is being built so that absent and zero can be told apart; the
zero-safe report is produced in a single unwrap step at the end.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from backend.config.settings import Settings
from backend.kpi_library.formulas import (
    calc_line_item_total,
    calc_payback_period_months,
    calc_roi_percentage,
)
from backend.models.enums import FormLetter, ReportStatus
from backend.models.report import (
    NUMERIC_FIELDS,
    InterventionBreakdown,
    LineItem,
    ROIReportData,
    SharedFields,
)
from backend.reports.parsing import (
    as_number,
    as_text,
    non_empty_strings,
    parse_intervention_breakdown,
    parse_line_items,
    parse_roi_variants,
)
from backend.services.shared_fields import resolve_shared_fields
from backend.store.base import FormStore, MalformedDataError, StoreError, StoreTimeoutError
from backend.store.paths import form_path, form_prefix, shared_fields_path

logger = logging.getLogger(__name__)

REPORT_FORMS: tuple[FormLetter, ...] = (
    FormLetter.A,
    FormLetter.B,
    FormLetter.C,
    FormLetter.D,
    FormLetter.E,
    FormLetter.G,
    FormLetter.J,
)


@dataclass
class ReportLoadResult:
    """Outcome of a report load that keeps 'no data' and 'store down' apart."""

    status: ReportStatus
    data: Optional[ROIReportData] = None
    error: Optional[str] = None


@dataclass
class _ReportDraft:
    shared_fields: SharedFields

    total_cost: Optional[float] = None
    total_benefit: Optional[float] = None
    roi: Optional[float] = None
    payback_period: Optional[float] = None
    total_mental_health_cost: Optional[float] = None
    reduced_stress_percentage: Optional[float] = None

    total_cost_alt2: Optional[float] = None
    total_benefit_alt2: Optional[float] = None
    roi_alt2: Optional[float] = None
    total_mental_health_cost_alt2: Optional[float] = None
    reduced_stress_percentage_alt2: Optional[float] = None

    total_cost_alt3: Optional[float] = None
    total_benefit_alt3: Optional[float] = None
    roi_alt3: Optional[float] = None
    total_mental_health_cost_alt3: Optional[float] = None
    min_effect_for_break_even_alt3: Optional[float] = None

    stress_percentage: Optional[float] = None
    production_loss_value: Optional[float] = None
    sick_leave_value: Optional[float] = None
    number_of_employees: Optional[float] = None

    time_period: str = ""
    current_situation: str = ""
    cause_analysis: str = ""
    intervention_purpose: str = ""
    goals_description: str = ""
    target_group: str = ""
    intervention_description: str = ""
    implementation_plan: str = ""
    recommendation: str = ""
    contact_email: str = ""
    contact_phone: str = ""

    intervention_costs: list[LineItem] = field(default_factory=list)
    benefit_areas: list[LineItem] = field(default_factory=list)
    interventions_array: list[str] = field(default_factory=list)
    implementation_plan_array: list[str] = field(default_factory=list)
    intervention_breakdown: list[InterventionBreakdown] = field(default_factory=list)
    used_fallback: bool = False


# ---------------------------------------------------------------------------
# Per-form steps
# ---------------------------------------------------------------------------

def _apply_form_a(draft: _ReportDraft, form: dict[str, Any]) -> None:
    """Current situation, goals, causes and the baseline statistics."""
    draft.current_situation = as_text(form.get("currentSituation"))
    draft.goals_description = as_text(form.get("goals"))
    draft.cause_analysis = as_text(form.get("causeAnalysis"))
    draft.recommendation = as_text(form.get("recommendation"))
    draft.stress_percentage = as_number(form.get("stressLevel"))
    draft.production_loss_value = as_number(form.get("productionLoss"))
    draft.sick_leave_value = as_number(form.get("sickLeaveCost"))

    interventions = non_empty_strings(form.get("interventions"))
    if interventions:
        draft.interventions_array = interventions
        draft.intervention_description = ", ".join(interventions)


def _apply_form_b(draft: _ReportDraft, form: dict[str, Any]) -> None:
    """Intervention design: purpose, target group, plan and costs."""
    if not draft.intervention_description.strip():
        description = as_text(form.get("interventionDescription"))
        if description:
            draft.intervention_description = description

    draft.intervention_purpose = as_text(form.get("purpose"))
    draft.target_group = as_text(form.get("targetGroup"))

    plan = non_empty_strings(form.get("implementationPlan"))
    draft.implementation_plan = ", ".join(plan)
    draft.implementation_plan_array = plan

    interventions = non_empty_strings(form.get("interventions"))
    if interventions and not draft.interventions_array:
        draft.interventions_array = interventions
        draft.intervention_description = ", ".join(interventions)

    goals = as_text(form.get("goals"))
    if goals:
        draft.goals_description = goals

    recommendation = as_text(form.get("recommendation"))
    if recommendation and not draft.recommendation.strip():
        draft.recommendation = recommendation

    draft.intervention_costs = parse_line_items(form.get("costs"))


def _apply_form_c(draft: _ReportDraft, form: dict[str, Any]) -> None:
    draft.time_period = as_text(form.get("timePeriod"))

    for key, attr in (
        ("percentHighStress", "stress_percentage"),
        ("valueProductionLoss", "production_loss_value"),
        ("totalCostSickLeaveMentalHealth", "sick_leave_value"),
    ):
        value = as_number(form.get(key))
        if value is not None:
            setattr(draft, attr, value)

    total_mental_health = as_number(form.get("totalCostMentalHealth"))
    if total_mental_health is not None and not draft.sick_leave_value:
        draft.sick_leave_value = total_mental_health


def _apply_form_d(draft: _ReportDraft, form: dict[str, Any]) -> None:
    """Organization extras; non-empty Form D identity wins over shared fields."""
    draft.number_of_employees = as_number(form.get("numberOfEmployees"))
    draft.contact_email = as_text(form.get("contactEmail"))
    draft.contact_phone = as_text(form.get("contactPhone"))

    shared = draft.shared_fields
    shared = replace(
        shared,
        contact_person=as_text(form.get("contactPerson")) or shared.contact_person,
        start_date=as_text(form.get("startDate")) or shared.start_date,
        end_date=as_text(form.get("endDate")) or shared.end_date,
    )
    draft.shared_fields = replace(shared, time_period=shared.date_range)


def _apply_form_e(draft: _ReportDraft, form: dict[str, Any]) -> None:
    draft.benefit_areas = parse_line_items(form.get("benefits"))


def _apply_form_g(draft: _ReportDraft, form: dict[str, Any]) -> None:
    draft.intervention_breakdown = parse_intervention_breakdown(form)


def _apply_form_j(draft: _ReportDraft, form: dict[str, Any]) -> None:
    """Copy the pre-computed ROI variants; fields absent in the form are left alone."""
    actual, max_cost, min_effect = parse_roi_variants(form)

    for attr, value in (
        ("total_cost", actual.total_cost),
        ("total_benefit", actual.total_benefit),
        ("roi", actual.roi),
        ("total_mental_health_cost", actual.total_mental_health_cost),
        ("reduced_stress_percentage", actual.reduced_stress_percentage),
        ("total_mental_health_cost_alt2", max_cost.total_mental_health_cost),
        ("reduced_stress_percentage_alt2", max_cost.reduced_stress_percentage),
        ("total_cost_alt3", min_effect.total_cost),
        ("total_mental_health_cost_alt3", min_effect.total_mental_health_cost),
        ("min_effect_for_break_even_alt3", min_effect.min_effect_for_break_even),
    ):
        if value is not None:
            setattr(draft, attr, value)

    if max_cost.is_defined:
        draft.total_cost_alt2 = max_cost.max_intervention_cost
        draft.total_benefit_alt2 = max_cost.total_benefit
        draft.roi_alt2 = max_cost.roi

    if min_effect.is_defined:
        draft.total_benefit_alt3 = min_effect.total_benefit
        draft.roi_alt3 = min_effect.roi

    _apply_payback(draft)

    time_period = as_text(form.get("timePeriod"))
    if time_period:
        draft.time_period = time_period

    if not draft.intervention_description.strip():
        draft.intervention_description = as_text(form.get("interventionDescription"))


def _apply_fallback(draft: _ReportDraft) -> None:
    """Derive the variant-1 figures from line items when Form J was never saved."""
    draft.used_fallback = True
    if draft.intervention_costs:
        draft.total_cost = calc_line_item_total(draft.intervention_costs)
    if draft.benefit_areas:
        draft.total_benefit = calc_line_item_total(draft.benefit_areas)
    if (draft.total_cost or 0) > 0 and (draft.total_benefit or 0) > 0:
        draft.roi = calc_roi_percentage(draft.total_cost, draft.total_benefit)
        _apply_payback(draft)


def _apply_payback(draft: _ReportDraft) -> None:
    total_cost = draft.total_cost or 0.0
    total_benefit = draft.total_benefit or 0.0
    if total_cost > 0 and total_benefit > 0:
        draft.payback_period = calc_payback_period_months(total_cost, total_benefit)


def _finalize(draft: _ReportDraft) -> ROIReportData:
    """Unwrap every Optional to its zero default and record what was missing.

    Derived sums and ratios can overflow even when every input is finite;
    such values are reported as missing rather than as inf or nan.
    """
    numbers: dict[str, Optional[float]] = {}
    for name in NUMERIC_FIELDS:
        value = getattr(draft, name)
        if value is not None and not math.isfinite(value):
            logger.warning(f"Discarding non-finite {name} ({value})")
            value = None
        numbers[name] = value
    missing = [name for name, value in numbers.items() if value is None]
    return ROIReportData(
        shared_fields=draft.shared_fields,
        **{name: 0.0 if value is None else float(value) for name, value in numbers.items()},
        time_period=draft.time_period or draft.shared_fields.date_range,
        current_situation=draft.current_situation,
        cause_analysis=draft.cause_analysis,
        intervention_purpose=draft.intervention_purpose,
        goals_description=draft.goals_description,
        target_group=draft.target_group,
        intervention_description=draft.intervention_description,
        implementation_plan=draft.implementation_plan,
        recommendation=draft.recommendation,
        contact_email=draft.contact_email,
        contact_phone=draft.contact_phone,
        intervention_costs=list(draft.intervention_costs),
        benefit_areas=list(draft.benefit_areas),
        interventions_array=list(draft.interventions_array),
        implementation_plan_array=list(draft.implementation_plan_array),
        intervention_breakdown=list(draft.intervention_breakdown),
        missing_fields=missing,
        used_fallback=draft.used_fallback,
    )


# ---------------------------------------------------------------------------
# Store access
# ---------------------------------------------------------------------------

async def _with_timeout(coro: Any, timeout: float, what: str) -> Any:
    try:
        return await asyncio.wait_for(coro, timeout)
    except asyncio.TimeoutError as e:
        raise StoreTimeoutError(f"Reading {what} timed out after {timeout}s", path=what) from e


async def _read_form(
    store: FormStore, path: str, timeout: float
) -> Optional[dict[str, Any]]:
    value = await _with_timeout(store.get(path), timeout, path)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise MalformedDataError(f"Expected an object at {path}", path=path)
    return value


async def _fetch_forms(
    store: FormStore, user_id: str, project_id: Optional[str], timeout: float
) -> dict[FormLetter, Optional[dict[str, Any]]]:
    paths = [form_path(user_id, letter, project_id) for letter in REPORT_FORMS]
    documents = await asyncio.gather(*(_read_form(store, path, timeout) for path in paths))
    return dict(zip(REPORT_FORMS, documents))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def aggregate_report(
    store: FormStore,
    user_id: str,
    project_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Optional[ROIReportData]:
    """Build the report, returning None when the user has no shared fields.

    Raises StoreError on any store failure.
    """
    if timeout is None:
        timeout = Settings().store_timeout_seconds

    stored_shared, forms = await asyncio.gather(
        _read_form(store, shared_fields_path(user_id, project_id), timeout),
        _fetch_forms(store, user_id, project_id, timeout),
    )
    shared = resolve_shared_fields(
        stored_shared, forms[FormLetter.A], forms[FormLetter.C], forms[FormLetter.D]
    )
    if shared is None:
        logger.info(f"No shared fields found for user {user_id}")
        return None

    draft = _ReportDraft(shared_fields=shared)
    steps = (
        (FormLetter.A, _apply_form_a),
        (FormLetter.B, _apply_form_b),
        (FormLetter.C, _apply_form_c),
        (FormLetter.E, _apply_form_e),
        (FormLetter.J, _apply_form_j),
    )
    for letter, step in steps:
        form = forms[letter]
        if form is not None:
            step(draft, form)

    if forms[FormLetter.J] is None:
        logger.info(f"No Form J for user {user_id}; deriving ROI from line items")
        _apply_fallback(draft)

    if forms[FormLetter.D] is not None:
        _apply_form_d(draft, forms[FormLetter.D])
    if forms[FormLetter.G] is not None:
        _apply_form_g(draft, forms[FormLetter.G])

    return _finalize(draft)


async def load_report_result(
    store: FormStore,
    user_id: str,
    project_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ReportLoadResult:
    """Load the report and classify the outcome.

    Invalid user or project ids raise ValueError before any store access.
    """
    form_prefix(user_id, project_id)
    try:
        data = await aggregate_report(store, user_id, project_id, timeout)
    except StoreError as e:
        logger.exception(f"Store failure while loading ROI report for user {user_id}")
        return ReportLoadResult(status=ReportStatus.STORE_ERROR, error=str(e))
    except Exception as e:
        logger.exception(f"Unexpected failure while loading ROI report for user {user_id}")
        return ReportLoadResult(status=ReportStatus.FAILED, error=str(e))

    if data is None:
        return ReportLoadResult(status=ReportStatus.NO_DATA)
    return ReportLoadResult(status=ReportStatus.READY, data=data)


async def load_roi_report_data(
    store: FormStore,
    user_id: str,
    project_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Optional[ROIReportData]:
    """Report data or None; never raises.

    None covers both 'no data yet' and failures, which are only visible
    in the logs. Use load_report_result to tell them apart.
    """
    try:
        result = await load_report_result(store, user_id, project_id, timeout)
    except Exception:
        logger.exception(f"Could not load ROI report for user {user_id}")
        return None
    return result.data
