"""Projects -- named ROI analyses, each with its own set of forms."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from backend.hooks.audit_hooks import log_store_write
from backend.models.project import RoiProject
from backend.store.base import FormStore, MalformedDataError
from backend.store.paths import form_prefix, project_path, projects_path, shared_fields_path
from backend.streaming import FormEventType, StreamManager

logger = logging.getLogger(__name__)


def _now_millis() -> int:
    return int(time.time() * 1000)


async def get_projects(store: FormStore, user_id: str) -> list[RoiProject]:
    """All projects of a user, oldest first."""
    path = projects_path(user_id)
    raw = await store.get(path)
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise MalformedDataError(f"Expected an object at {path}", path=path)
    projects = [
        RoiProject.from_store(key, value)
        for key, value in raw.items()
        if isinstance(value, dict)
    ]
    return sorted(projects, key=lambda project: project.created_at)


async def get_project(store: FormStore, user_id: str, project_id: str) -> Optional[RoiProject]:
    raw = await store.get(project_path(user_id, project_id))
    if not isinstance(raw, dict):
        return None
    return RoiProject.from_store(project_id, raw)


async def create_project(
    store: FormStore,
    user_id: str,
    name: str,
    description: str = "",
    stream_manager: Optional[StreamManager] = None,
) -> RoiProject:
    timestamp = _now_millis()
    draft = RoiProject(id="", name=name, description=description, created_at=timestamp, updated_at=timestamp)
    project_id = await store.push(projects_path(user_id), draft.to_store())
    project = RoiProject(
        id=project_id,
        name=name,
        description=description,
        created_at=timestamp,
        updated_at=timestamp,
    )
    path = project_path(user_id, project_id)
    await store.update(path, {"id": project_id})
    log_store_write(user_id, "create_project", path, project.to_store())

    if stream_manager is not None:
        await stream_manager.publish(
            user_id, FormEventType.PROJECT_CREATED, {"project": project.to_store()}
        )
    logger.info(f"Created project {project_id} for user {user_id}")
    return project


async def update_project(
    store: FormStore,
    user_id: str,
    project_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    stream_manager: Optional[StreamManager] = None,
) -> Optional[RoiProject]:
    """Rename or re-describe a project. Returns None if it does not exist."""
    if await get_project(store, user_id, project_id) is None:
        return None

    updates: dict[str, Any] = {"updatedAt": _now_millis()}
    if name is not None:
        updates["name"] = name
    if description is not None:
        updates["description"] = description
    path = project_path(user_id, project_id)
    await store.update(path, updates)
    log_store_write(user_id, "update_project", path, updates)

    project = await get_project(store, user_id, project_id)
    if stream_manager is not None and project is not None:
        await stream_manager.publish(
            user_id, FormEventType.PROJECT_UPDATED, {"project": project.to_store()}
        )
    return project


async def delete_project(
    store: FormStore,
    user_id: str,
    project_id: str,
    stream_manager: Optional[StreamManager] = None,
) -> None:
    """Remove a project together with all of its forms."""
    path = project_path(user_id, project_id)
    await store.remove(path)
    await store.remove(form_prefix(user_id, project_id))
    log_store_write(user_id, "delete_project", path)

    if stream_manager is not None:
        await stream_manager.publish(
            user_id, FormEventType.PROJECT_DELETED, {"projectId": project_id}
        )
    logger.info(f"Deleted project {project_id} for user {user_id}")


async def initialize_project_from_default(
    store: FormStore, user_id: str, project_id: str
) -> bool:
    """Copy the user's default forms and shared fields into the project.

    Returns False if the user has no default forms.
    """
    source = form_prefix(user_id)
    defaults = await store.get(source)
    if defaults is None:
        return False
    if not isinstance(defaults, dict):
        raise MalformedDataError(f"Expected an object at {source}", path=source)

    target = form_prefix(user_id, project_id)
    await store.set(target, defaults)
    shared = await store.get(shared_fields_path(user_id))
    if isinstance(shared, dict):
        await store.set(shared_fields_path(user_id, project_id), shared)
    log_store_write(user_id, "initialize_project", target, defaults)
    logger.info(f"Initialized project {project_id} from {len(defaults)} default form node(s)")
    return True
