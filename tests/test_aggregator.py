"""Tests for the ROI aggregation pipeline."""

import asyncio
import math
from dataclasses import fields
from unittest.mock import AsyncMock, patch

import pytest

from backend.models.enums import ReportStatus
from backend.models.report import NUMERIC_FIELDS, LineItem
from backend.reports.aggregator import (
    aggregate_report,
    load_report_result,
    load_roi_report_data,
)
from backend.store import InMemoryFormStore, StoreError, StoreUnavailableError

SHARED = {"organizationName": "Acme", "contactPerson": "Eva", "timePeriod": ""}


def make_store(forms=None, shared=SHARED, project_forms=None):
    """InMemoryFormStore seeded for user u1."""
    user = {}
    if shared is not None:
        user["sharedFields"] = shared
    if forms:
        user["forms"] = forms
    if project_forms:
        user["projectForms"] = project_forms
    return InMemoryFormStore({"users": {"u1": user}})


class SlowStore(InMemoryFormStore):
    async def get(self, path):
        await asyncio.sleep(1)
        return await super().get(path)


class TestReportSources:
    @pytest.mark.asyncio
    async def test_form_j_variant_one_is_copied(self):
        """Form J variant 1 drives ROI, payback is derived."""
        store = make_store(
            {
                "J": {
                    "totalInterventionCostAlt1": 100000,
                    "economicBenefitAlt1": 250000,
                    "roiPercentageAlt1": 150,
                }
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert data is not None
        assert data.roi == 150
        assert data.total_cost == 100000
        assert data.total_benefit == 250000
        assert data.payback_period == pytest.approx(4.8)
        assert data.used_fallback is False
        assert data.shared_fields.organization_name == "Acme"

    @pytest.mark.asyncio
    async def test_fallback_sums_line_items(self):
        """Without Form J, ROI comes from Form B costs and Form E benefits."""
        store = make_store(
            {
                "B": {"costs": [{"description": "Coaching", "amount": 50000}]},
                "E": {"benefits": [{"description": "Reduced absence", "amount": 120000}]},
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert data.total_cost == 50000
        assert data.total_benefit == 120000
        assert data.roi == pytest.approx(140.0)
        assert data.payback_period == pytest.approx(5.0)
        assert data.used_fallback is True
        assert data.intervention_costs == [LineItem("Coaching", 50000.0)]
        assert data.benefit_areas == [LineItem("Reduced absence", 120000.0)]

    @pytest.mark.asyncio
    async def test_no_shared_fields_returns_none(self):
        """No shared fields means no report, whatever else is stored."""
        store = make_store(
            {
                "B": {"costs": [{"description": "Coaching", "amount": 50000}]},
                "J": {"roiPercentageAlt1": 150},
            },
            shared=None,
        )
        assert await load_roi_report_data(store, "u1") is None
        result = await load_report_result(store, "u1")
        assert result.status == ReportStatus.NO_DATA
        assert result.data is None

    @pytest.mark.asyncio
    async def test_max_cost_break_even(self):
        """Variant 2 takes its benefit from variant 1 and breaks even."""
        store = make_store(
            {"J": {"maxInterventionCostAlt2": 80000, "economicBenefitAlt1": 200000}}
        )
        data = await load_roi_report_data(store, "u1")
        assert data.total_cost_alt2 == 80000
        assert data.total_benefit_alt2 == 200000
        assert data.roi_alt2 == 0
        assert "roi_alt2" not in data.missing_fields


class TestInvariants:
    @pytest.mark.asyncio
    async def test_every_field_is_zero_safe(self):
        """Garbage in the store still yields finite numbers and strings."""
        store = make_store(
            {
                "A": {
                    "currentSituation": 42,
                    "stressLevel": math.nan,
                    "interventions": "not a list",
                },
                "B": {"costs": "nope", "purpose": None, "implementationPlan": {"0": "Start"}},
                "C": {"percentHighStress": "abc", "timePeriod": 2024},
                "J": {"totalInterventionCostAlt1": "abc", "roiPercentageAlt1": None},
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert data is not None
        for name in NUMERIC_FIELDS:
            value = getattr(data, name)
            assert isinstance(value, float), name
            assert math.isfinite(value), name
        for f in fields(data):
            if f.type == "str":
                assert isinstance(getattr(data, f.name), str), f.name
        assert data.implementation_plan_array == ["Start"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "forms,dropped",
        [
            (
                {
                    "B": {
                        "costs": [
                            {"description": "a", "amount": 1e308},
                            {"description": "b", "amount": 1e308},
                        ]
                    },
                    "E": {"benefits": [{"description": "c", "amount": 5}]},
                },
                {"total_cost", "roi", "payback_period"},
            ),
            (
                {"J": {"totalInterventionCostAlt1": 1e300, "economicBenefitAlt1": 1e-300}},
                {"payback_period"},
            ),
            (
                {
                    "J": {
                        "totalInterventionCostAlt1": "120 000",
                        "economicBenefitAlt1": "1e308",
                        "roiPercentageAlt1": "4,5",
                        "maxInterventionCostAlt2": "inf",
                    }
                },
                set(),
            ),
        ],
    )
    async def test_overflowing_values_stay_finite(self, forms, dropped):
        """Sums and ratios that overflow are reported as missing, never inf or nan."""
        data = await load_roi_report_data(make_store(forms), "u1")
        assert data is not None
        for name in NUMERIC_FIELDS:
            value = getattr(data, name)
            assert isinstance(value, float), name
            assert math.isfinite(value), name
        for name in dropped:
            assert getattr(data, name) == 0.0, name
            assert name in data.missing_fields, name

    @pytest.mark.asyncio
    async def test_string_numbers_in_form_j(self):
        store = make_store(
            {"J": {"totalInterventionCostAlt1": "120 000", "roiPercentageAlt1": "4,5"}}
        )
        data = await load_roi_report_data(store, "u1")
        assert data.total_cost == 120000
        assert data.roi == 4.5

    @pytest.mark.asyncio
    async def test_overflowing_breakdown_is_zeroed(self):
        store = make_store(
            {
                "G": {
                    "interventions": [
                        {"name": "Kurs", "costs": [{"externalCost": 1e308}, {"externalCost": 1e308}]}
                    ]
                }
            }
        )
        data = await load_roi_report_data(store, "u1")
        breakdown = data.intervention_breakdown[0]
        assert breakdown.external_cost == 0.0
        assert breakdown.total_cost == 0.0

    @pytest.mark.asyncio
    async def test_min_effect_break_even(self):
        """Variant 3 has ROI 0 and benefit equal to cost."""
        store = make_store(
            {"J": {"minEffectForBreakEvenAlt3": 12.5, "totalInterventionCostAlt3": 90000}}
        )
        data = await load_roi_report_data(store, "u1")
        assert data.roi_alt3 == 0
        assert data.total_benefit_alt3 == data.total_cost_alt3 == 90000
        assert data.min_effect_for_break_even_alt3 == 12.5

    @pytest.mark.asyncio
    async def test_payback_needs_cost_and_benefit(self):
        store = make_store({"J": {"totalInterventionCostAlt1": 100000}})
        data = await load_roi_report_data(store, "u1")
        assert data.payback_period == 0
        assert "payback_period" in data.missing_fields

    @pytest.mark.asyncio
    async def test_fallback_without_benefits_leaves_roi_unset(self):
        store = make_store({"B": {"costs": [{"description": "Coaching", "amount": 50000}]}})
        data = await load_roi_report_data(store, "u1")
        assert data.total_cost == 50000
        assert data.roi == 0
        assert data.payback_period == 0
        assert "roi" in data.missing_fields

    @pytest.mark.asyncio
    async def test_missing_fields_tracks_absent_values(self):
        store = make_store({"J": {"roiPercentageAlt1": 0}})
        data = await load_roi_report_data(store, "u1")
        assert "roi" not in data.missing_fields
        assert "total_cost" in data.missing_fields
        assert "stress_percentage" in data.missing_fields
        assert data.to_dict()["missingFields"][0] == "totalCost"


class TestFormPrecedence:
    @pytest.mark.asyncio
    async def test_form_c_statistics_override_form_a(self):
        store = make_store(
            {
                "A": {"stressLevel": 30, "productionLoss": 1000},
                "C": {"percentHighStress": 40, "totalCostMentalHealth": 750000},
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert data.stress_percentage == 40
        assert data.production_loss_value == 1000
        assert data.sick_leave_value == 750000

    @pytest.mark.asyncio
    async def test_form_a_interventions_are_joined(self):
        store = make_store(
            {
                "A": {"interventions": ["Coaching", "", "Workshops"]},
                "B": {"interventionDescription": "Ignored", "interventions": ["Other"]},
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert data.intervention_description == "Coaching, Workshops"
        assert data.interventions_array == ["Coaching", "Workshops"]

    @pytest.mark.asyncio
    async def test_form_b_description_used_when_form_a_is_empty(self):
        store = make_store(
            {
                "B": {
                    "interventionDescription": "Stresshantering",
                    "purpose": "Minska stress",
                    "targetGroup": "Chefer",
                    "implementationPlan": ["Kartlägg", "Genomför"],
                    "goals": "Lägre sjukfrånvaro",
                }
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert data.intervention_description == "Stresshantering"
        assert data.intervention_purpose == "Minska stress"
        assert data.target_group == "Chefer"
        assert data.implementation_plan == "Kartlägg, Genomför"
        assert data.goals_description == "Lägre sjukfrånvaro"

    @pytest.mark.asyncio
    async def test_form_j_time_period_wins_over_form_c(self):
        store = make_store(
            {
                "C": {"timePeriod": "2023"},
                "J": {"timePeriod": "2024-01-01 - 2024-12-31"},
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert data.time_period == "2024-01-01 - 2024-12-31"

    @pytest.mark.asyncio
    async def test_time_period_falls_back_to_shared_dates(self):
        store = make_store(
            shared={
                "organizationName": "Acme",
                "startDate": "2024-01-01",
                "endDate": "2024-06-30",
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert data.time_period == "2024-01-01 - 2024-06-30"

    @pytest.mark.asyncio
    async def test_stored_time_period_reaches_report(self):
        store = make_store(
            {"J": {"roiPercentageAlt1": 10}},
            shared={"organizationName": "Acme", "timePeriod": "2024-01-01 - 2024-12-31"},
        )
        data = await load_roi_report_data(store, "u1")
        assert data.time_period == "2024-01-01 - 2024-12-31"
        assert data.shared_fields.start_date == "2024-01-01"

    @pytest.mark.asyncio
    async def test_time_period_alone_is_enough_for_a_report(self):
        store = make_store(
            {"J": {"roiPercentageAlt1": 10}},
            shared={"timePeriod": "2024-01-01 - 2024-12-31"},
        )
        data = await load_roi_report_data(store, "u1")
        assert data is not None
        assert data.roi == 10
        assert data.time_period == "2024-01-01 - 2024-12-31"

    @pytest.mark.asyncio
    async def test_each_document_is_read_once(self):
        store = make_store({"A": {"organizationName": "Acme"}, "J": {"roiPercentageAlt1": 10}})
        reads = []
        original_get = store.get

        async def counting_get(path):
            reads.append(path)
            return await original_get(path)

        with patch.object(store, "get", counting_get):
            await aggregate_report(store, "u1")
        assert len(reads) == len(set(reads))
        assert "users/u1/forms/A" in reads
        assert "users/u1/sharedFields" in reads

    @pytest.mark.asyncio
    async def test_form_d_extras_and_identity(self):
        store = make_store(
            {
                "D": {
                    "organizationName": "Acme AB",
                    "contactPerson": "Nils",
                    "numberOfEmployees": 120,
                    "contactEmail": "nils@acme.se",
                    "startDate": "2024-01-01",
                    "endDate": "2024-12-31",
                }
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert data.number_of_employees == 120
        assert data.contact_email == "nils@acme.se"
        assert data.shared_fields.contact_person == "Nils"
        assert data.shared_fields.date_range == "2024-01-01 - 2024-12-31"

    @pytest.mark.asyncio
    async def test_form_g_breakdown(self):
        store = make_store(
            {
                "G": {
                    "interventions": [
                        {"name": "Kurs", "costs": [{"externalCost": 1000, "internalCost": 500}]}
                    ]
                }
            }
        )
        data = await load_roi_report_data(store, "u1")
        assert len(data.intervention_breakdown) == 1
        assert data.intervention_breakdown[0].total_cost == 1500

    @pytest.mark.asyncio
    async def test_project_scope_reads_project_forms(self):
        store = make_store(
            {"J": {"roiPercentageAlt1": 10}},
            project_forms={
                "p1": {
                    "sharedFields": {"organizationName": "Projekt AB"},
                    "J": {"roiPercentageAlt1": 99},
                }
            },
        )
        data = await load_roi_report_data(store, "u1", project_id="p1")
        assert data.roi == 99
        assert data.shared_fields.organization_name == "Projekt AB"


class TestFailures:
    @pytest.mark.asyncio
    async def test_store_timeout_is_a_store_error(self):
        store = SlowStore({"users": {"u1": {"sharedFields": SHARED}}})
        result = await load_report_result(store, "u1", timeout=0.01)
        assert result.status == ReportStatus.STORE_ERROR
        assert await load_roi_report_data(store, "u1", timeout=0.01) is None

    @pytest.mark.asyncio
    async def test_unavailable_store(self):
        store = make_store()
        with patch.object(
            store, "get", AsyncMock(side_effect=StoreUnavailableError("down", path="users"))
        ):
            result = await load_report_result(store, "u1")
        assert result.status == ReportStatus.STORE_ERROR
        assert "down" in result.error

    @pytest.mark.asyncio
    async def test_malformed_form_is_a_store_error(self):
        store = make_store({"J": "not an object"})
        result = await load_report_result(store, "u1")
        assert result.status == ReportStatus.STORE_ERROR
        assert await load_roi_report_data(store, "u1") is None

    @pytest.mark.asyncio
    async def test_unexpected_failure(self):
        store = make_store({"J": {"roiPercentageAlt1": 10}})
        with patch(
            "backend.reports.aggregator._finalize", side_effect=RuntimeError("boom")
        ):
            result = await load_report_result(store, "u1")
        assert result.status == ReportStatus.FAILED
        assert result.error == "boom"

    @pytest.mark.asyncio
    async def test_invalid_user_id(self):
        store = make_store()
        with pytest.raises(ValueError):
            await load_report_result(store, "a/b")
        assert await load_roi_report_data(store, "a/b") is None

    @pytest.mark.asyncio
    async def test_aggregate_report_raises_store_errors(self):
        store = make_store({"A": ["list", "instead", "of", "object"]})
        with pytest.raises(StoreError):
            await aggregate_report(store, "u1")
