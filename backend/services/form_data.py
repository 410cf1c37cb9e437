"""Form data service -- reads and writes single form documents."""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Optional

from backend.hooks.audit_hooks import log_store_write
from backend.models.enums import FormLetter
from backend.models.report import SharedFields
from backend.store.base import FormStore, MalformedDataError
from backend.store.paths import form_path, form_timestamp_path, project_path
from backend.streaming import FormEventType, StreamManager

from .shared_fields import carries_shared_fields, update_shared_fields_from_form

logger = logging.getLogger(__name__)


def sanitize_form_data(value: Any) -> Any:
    """Replace NaN and infinities with None, recursively.

    The store's JSON encoding has no representation for them.
    """
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: sanitize_form_data(item) for key, item in value.items()}
    if isinstance(value, list):
        return [sanitize_form_data(item) for item in value]
    return value


async def load_form_data(
    store: FormStore,
    user_id: str,
    letter: FormLetter,
    project_id: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    path = form_path(user_id, letter, project_id)
    raw = await store.get(path)
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise MalformedDataError(f"Expected an object at {path}", path=path)
    return raw


async def save_form_data(
    store: FormStore,
    user_id: str,
    letter: FormLetter,
    data: dict[str, Any],
    project_id: Optional[str] = None,
    stream_manager: Optional[StreamManager] = None,
) -> dict[str, Any]:
    """Write a form, its timestamp, and any shared fields it carries.

    Returns the sanitized document as stored.
    """
    letter = FormLetter(letter)
    path = form_path(user_id, letter, project_id)
    clean = sanitize_form_data(data)

    await store.set(path, clean)
    await store.set(
        form_timestamp_path(user_id, letter, project_id),
        datetime.now(tz=timezone.utc).isoformat(),
    )
    if project_id:
        await store.update(
            project_path(user_id, project_id), {"updatedAt": int(time.time() * 1000)}
        )
    log_store_write(user_id, "save_form", path, clean)

    if stream_manager is not None:
        await stream_manager.publish(
            user_id,
            FormEventType.FORM_SAVED,
            {"form": letter.value, "projectId": project_id},
        )

    if carries_shared_fields(clean):
        shared = await update_shared_fields_from_form(store, user_id, clean, project_id)
        if stream_manager is not None:
            await stream_manager.publish(
                user_id,
                FormEventType.SHARED_FIELDS_UPDATED,
                {"projectId": project_id, "sharedFields": shared.to_dict()},
            )

    logger.info(f"Form {letter.value} saved for user {user_id}")
    return clean


async def update_form_field_value(
    store: FormStore,
    user_id: str,
    letter: FormLetter,
    field_name: str,
    value: Any,
    project_id: Optional[str] = None,
    stream_manager: Optional[StreamManager] = None,
) -> dict[str, Any]:
    """Set one field on a form, creating the form if it does not exist yet."""
    current = await load_form_data(store, user_id, letter, project_id) or {}
    return await save_form_data(
        store,
        user_id,
        letter,
        {**current, field_name: value},
        project_id=project_id,
        stream_manager=stream_manager,
    )


def apply_shared_fields(
    form: dict[str, Any],
    shared: Optional[SharedFields],
    include_time_period: bool = False,
) -> dict[str, Any]:
    """Copy of ``form`` with its identity fields filled from shared fields."""
    result = dict(form)
    if shared is None:
        return result
    values = {
        "organizationName": shared.organization_name,
        "contactPerson": shared.contact_person,
        "startDate": shared.start_date,
        "endDate": shared.end_date,
    }
    result.update({key: value for key, value in values.items() if value})
    if include_time_period and shared.date_range:
        result["timePeriod"] = shared.date_range
    return result
