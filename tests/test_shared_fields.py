"""Tests for resolving and saving the organization identity shared across forms."""

import pytest

from backend.models.report import SharedFields
from backend.services.shared_fields import (
    carries_shared_fields,
    load_organization_info_from_form_d,
    load_shared_fields,
    resolve_shared_fields,
    save_shared_fields,
    update_shared_fields_from_form,
)
from backend.store import InMemoryFormStore, MalformedDataError


def make_store(user):
    return InMemoryFormStore({"users": {"u1": user}})


class TestLoadSharedFields:
    @pytest.mark.asyncio
    async def test_nothing_stored(self):
        assert await load_shared_fields(InMemoryFormStore(), "u1") is None

    @pytest.mark.asyncio
    async def test_stored_node(self):
        store = make_store({"sharedFields": {"organizationName": "Acme", "contactPerson": "Eva"}})
        shared = await load_shared_fields(store, "u1")
        assert shared.organization_name == "Acme"
        assert shared.contact_person == "Eva"

    @pytest.mark.asyncio
    async def test_stored_time_period_is_kept_and_split(self):
        store = make_store(
            {"sharedFields": {"organizationName": "Acme", "timePeriod": "2024-01-01 - 2024-12-31"}}
        )
        shared = await load_shared_fields(store, "u1")
        assert shared.time_period == "2024-01-01 - 2024-12-31"
        assert shared.start_date == "2024-01-01"
        assert shared.end_date == "2024-12-31"

    @pytest.mark.asyncio
    async def test_time_period_only_node_is_not_empty(self):
        store = make_store({"sharedFields": {"timePeriod": "Q1 2024"}})
        shared = await load_shared_fields(store, "u1")
        assert shared is not None
        assert shared.time_period == "Q1 2024"
        assert shared.start_date == ""

    @pytest.mark.asyncio
    async def test_form_d_overrides_form_a(self):
        store = make_store(
            {
                "forms": {
                    "A": {"organizationName": "Acme", "contactPerson": "Eva"},
                    "D": {
                        "organizationName": "Acme AB",
                        "startDate": "2024-01-01",
                        "endDate": "2024-12-31",
                    },
                }
            }
        )
        shared = await load_shared_fields(store, "u1")
        assert shared.organization_name == "Acme AB"
        assert shared.contact_person == "Eva"
        assert shared.time_period == "2024-01-01 - 2024-12-31"

    @pytest.mark.asyncio
    async def test_form_c_time_period_split_when_form_d_missing(self):
        store = make_store(
            {
                "forms": {
                    "A": {"organizationName": "Acme"},
                    "C": {"timePeriod": "2024-01-01 - 2024-06-30"},
                }
            }
        )
        shared = await load_shared_fields(store, "u1")
        assert shared.start_date == "2024-01-01"
        assert shared.end_date == "2024-06-30"

    @pytest.mark.asyncio
    async def test_form_c_ignored_when_form_d_present(self):
        store = make_store(
            {
                "forms": {
                    "C": {"timePeriod": "2020-01-01 - 2020-12-31"},
                    "D": {"organizationName": "Acme"},
                }
            }
        )
        shared = await load_shared_fields(store, "u1")
        assert shared.start_date == ""
        assert shared.time_period == ""

    @pytest.mark.asyncio
    async def test_malformed_form(self):
        store = make_store({"forms": {"A": "oops"}})
        with pytest.raises(MalformedDataError):
            await load_shared_fields(store, "u1")

    @pytest.mark.asyncio
    async def test_project_scope(self):
        store = make_store(
            {"projectForms": {"p1": {"sharedFields": {"organizationName": "Projekt"}}}}
        )
        assert await load_shared_fields(store, "u1") is None
        shared = await load_shared_fields(store, "u1", "p1")
        assert shared.organization_name == "Projekt"


class TestSaveSharedFields:
    @pytest.mark.asyncio
    async def test_writes_node_and_timestamp(self):
        store = InMemoryFormStore()
        await save_shared_fields(store, "u1", SharedFields(organization_name="Acme"))
        node = await store.get("users/u1/sharedFields")
        assert node["organizationName"] == "Acme"
        assert isinstance(await store.get("users/u1/sharedFields_timestamp"), str)

    @pytest.mark.asyncio
    async def test_update_from_form_keeps_keys_the_form_lacks(self):
        store = make_store({"sharedFields": {"organizationName": "Acme", "contactPerson": "Eva"}})
        shared = await update_shared_fields_from_form(store, "u1", {"contactPerson": "Nils"})
        assert shared.organization_name == "Acme"
        assert shared.contact_person == "Nils"
        node = await store.get("users/u1/sharedFields")
        assert node["contactPerson"] == "Nils"

    @pytest.mark.asyncio
    async def test_update_from_form_keeps_stored_time_period(self):
        store = make_store({"sharedFields": {"timePeriod": "Q1 2024"}})
        await update_shared_fields_from_form(store, "u1", {"contactPerson": "Nils"})
        node = await store.get("users/u1/sharedFields")
        assert node["timePeriod"] == "Q1 2024"
        assert node["contactPerson"] == "Nils"

    def test_carries_shared_fields(self):
        assert carries_shared_fields({"startDate": "2024-01-01"})
        assert not carries_shared_fields({"goals": "x"})


class TestOrganizationInfo:
    @pytest.mark.asyncio
    async def test_reads_form_d(self):
        store = make_store(
            {"forms": {"D": {"organizationName": "Acme AB", "contactPerson": "Nils"}}}
        )
        info = await load_organization_info_from_form_d(store, "u1")
        assert info.organization_name == "Acme AB"
        assert info.contact_person == "Nils"

    @pytest.mark.asyncio
    async def test_missing_form_d(self):
        assert await load_organization_info_from_form_d(InMemoryFormStore(), "u1") is None

    @pytest.mark.asyncio
    async def test_form_d_without_identity(self):
        store = make_store({"forms": {"D": {"numberOfEmployees": 10}}})
        assert await load_organization_info_from_form_d(store, "u1") is None


class TestResolveSharedFields:
    def test_all_empty(self):
        assert resolve_shared_fields(None) is None
        assert resolve_shared_fields({"organizationName": ""}, {}, {}, {}) is None

    def test_form_a_overrides_stored_node(self):
        shared = resolve_shared_fields(
            {"organizationName": "Old", "contactPerson": "Eva"},
            form_a={"organizationName": "New"},
        )
        assert shared.organization_name == "New"
        assert shared.contact_person == "Eva"

    def test_form_d_dates_win_over_stored_time_period(self):
        shared = resolve_shared_fields(
            {"timePeriod": "2023-01-01 - 2023-12-31"},
            form_d={"startDate": "2024-01-01", "endDate": "2024-06-30"},
        )
        assert shared.time_period == "2024-01-01 - 2024-06-30"
