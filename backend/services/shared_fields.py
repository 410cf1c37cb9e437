"""Shared fields -- organization identity denormalized across forms."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional

from backend.models.enums import FormLetter
from backend.models.report import OrganizationInfo, SharedFields
from backend.reports.parsing import as_text
from backend.store.base import FormStore, MalformedDataError
from backend.store.paths import form_path, shared_fields_path

logger = logging.getLogger(__name__)

SHARED_FIELD_KEYS = ("organizationName", "contactPerson", "startDate", "endDate")


def _as_document(value: Any, path: str) -> Optional[dict[str, Any]]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise MalformedDataError(f"Expected an object at {path}", path=path)
    return value


def _split_time_period(time_period: str) -> tuple[str, str]:
    parts = time_period.split(" - ")
    if len(parts) == 2:
        return parts[0].strip(), parts[1].strip()
    return "", ""


def resolve_shared_fields(
    stored: Optional[dict[str, Any]],
    form_a: Optional[dict[str, Any]] = None,
    form_c: Optional[dict[str, Any]] = None,
    form_d: Optional[dict[str, Any]] = None,
) -> Optional[SharedFields]:
    """Merge already-fetched documents into shared fields, or None if all are empty.

    Precedence: the stored ``sharedFields`` node, then Form A, then Form D.
    Form C's ``timePeriod`` supplies the dates only when Form D is missing.
    A stored ``timePeriod`` of the form "start - end" fills in missing dates.
    """
    shared = SharedFields()
    if stored:
        time_period = as_text(stored.get("timePeriod"))
        start, end = _split_time_period(time_period)
        shared = SharedFields(
            organization_name=as_text(stored.get("organizationName")),
            contact_person=as_text(stored.get("contactPerson")),
            start_date=as_text(stored.get("startDate")) or start,
            end_date=as_text(stored.get("endDate")) or end,
            time_period=time_period,
        )

    if form_a:
        shared = replace(
            shared,
            organization_name=as_text(form_a.get("organizationName")) or shared.organization_name,
            contact_person=as_text(form_a.get("contactPerson")) or shared.contact_person,
        )

    if form_d:
        shared = replace(
            shared,
            organization_name=as_text(form_d.get("organizationName")) or shared.organization_name,
            contact_person=as_text(form_d.get("contactPerson")) or shared.contact_person,
            start_date=as_text(form_d.get("startDate")) or shared.start_date,
            end_date=as_text(form_d.get("endDate")) or shared.end_date,
        )
    elif form_c:
        time_period = as_text(form_c.get("timePeriod"))
        start, end = _split_time_period(time_period)
        shared = replace(
            shared,
            time_period=time_period or shared.time_period,
            start_date=start or shared.start_date,
            end_date=end or shared.end_date,
        )

    if shared.is_empty:
        return None
    return replace(shared, time_period=shared.date_range)


async def load_shared_fields(
    store: FormStore, user_id: str, project_id: Optional[str] = None
) -> Optional[SharedFields]:
    """Read the shared fields node and Forms A, C and D, then resolve them."""
    paths = [
        shared_fields_path(user_id, project_id),
        form_path(user_id, FormLetter.A, project_id),
        form_path(user_id, FormLetter.C, project_id),
        form_path(user_id, FormLetter.D, project_id),
    ]
    raw = await asyncio.gather(*(store.get(path) for path in paths))
    stored, form_a, form_c, form_d = (
        _as_document(value, path) for value, path in zip(raw, paths)
    )
    shared = resolve_shared_fields(stored, form_a, form_c, form_d)
    if shared is None:
        logger.info(f"No shared fields found for user {user_id}")
    return shared


async def save_shared_fields(
    store: FormStore,
    user_id: str,
    shared: SharedFields,
    project_id: Optional[str] = None,
) -> None:
    """Persist shared fields and their timestamp."""
    path = shared_fields_path(user_id, project_id)
    await store.set(
        path,
        {
            "organizationName": shared.organization_name,
            "contactPerson": shared.contact_person,
            "startDate": shared.start_date,
            "endDate": shared.end_date,
            "timePeriod": shared.date_range,
        },
    )
    await store.set(f"{path}_timestamp", datetime.now(tz=timezone.utc).isoformat())
    logger.info(f"Shared fields saved at {path}")


def shared_fields_from_form(form_data: dict[str, Any]) -> SharedFields:
    return SharedFields(
        organization_name=as_text(form_data.get("organizationName")),
        contact_person=as_text(form_data.get("contactPerson")),
        start_date=as_text(form_data.get("startDate")),
        end_date=as_text(form_data.get("endDate")),
        time_period=as_text(form_data.get("timePeriod")),
    )


def carries_shared_fields(form_data: dict[str, Any]) -> bool:
    return any(key in form_data for key in SHARED_FIELD_KEYS)


async def update_shared_fields_from_form(
    store: FormStore,
    user_id: str,
    form_data: dict[str, Any],
    project_id: Optional[str] = None,
) -> SharedFields:
    """Merge the identity fields of a just-saved form into shared storage.

    Keys the form does not carry keep their stored value.
    """
    path = shared_fields_path(user_id, project_id)
    stored = _as_document(await store.get(path), path) or {}
    merged = {key: stored.get(key) for key in SHARED_FIELD_KEYS}
    merged["timePeriod"] = stored.get("timePeriod")
    merged.update({key: form_data[key] for key in SHARED_FIELD_KEYS if key in form_data})
    shared = shared_fields_from_form(merged)
    await save_shared_fields(store, user_id, shared, project_id)
    return shared


async def load_organization_info_from_form_d(
    store: FormStore, user_id: str, project_id: Optional[str] = None
) -> Optional[OrganizationInfo]:
    """Fresh organization name, contact person and dates straight from Form D."""
    path = form_path(user_id, FormLetter.D, project_id)
    form_d = _as_document(await store.get(path), path)
    if not form_d:
        return None
    info = OrganizationInfo(
        organization_name=as_text(form_d.get("organizationName")),
        contact_person=as_text(form_d.get("contactPerson")),
        start_date=as_text(form_d.get("startDate")),
        end_date=as_text(form_d.get("endDate")),
    )
    return None if info.is_empty else info
