"""Tests for the projects service."""

import asyncio

import pytest

from backend.services.projects import (
    create_project,
    delete_project,
    get_project,
    get_projects,
    initialize_project_from_default,
    update_project,
)
from backend.store import InMemoryFormStore
from backend.streaming import FormEventType, StreamManager


@pytest.fixture
def store():
    return InMemoryFormStore()


class TestProjects:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        project = await create_project(store, "u1", "Pilot", "Första analysen")
        assert project.id
        assert project.created_at == project.updated_at > 0
        stored = await get_project(store, "u1", project.id)
        assert stored == project

    @pytest.mark.asyncio
    async def test_list_is_ordered_by_creation(self, store):
        await store.set("users/u1/projects/b", {"id": "b", "name": "Två", "createdAt": 2})
        await store.set("users/u1/projects/a", {"id": "a", "name": "Ett", "createdAt": 1})
        projects = await get_projects(store, "u1")
        assert [p.name for p in projects] == ["Ett", "Två"]

    @pytest.mark.asyncio
    async def test_list_empty(self, store):
        assert await get_projects(store, "u1") == []

    @pytest.mark.asyncio
    async def test_update(self, store):
        project = await create_project(store, "u1", "Pilot")
        updated = await update_project(store, "u1", project.id, name="Pilot 2")
        assert updated.name == "Pilot 2"
        assert updated.description == ""
        assert updated.updated_at >= project.updated_at

    @pytest.mark.asyncio
    async def test_update_missing_project(self, store):
        assert await update_project(store, "u1", "nope", name="x") is None
        assert await store.get("users/u1/projects/nope") is None

    @pytest.mark.asyncio
    async def test_delete_removes_forms(self, store):
        project = await create_project(store, "u1", "Pilot")
        await store.set(f"users/u1/projectForms/{project.id}/A", {"goals": "x"})
        await delete_project(store, "u1", project.id)
        assert await get_project(store, "u1", project.id) is None
        assert await store.get(f"users/u1/projectForms/{project.id}") is None

    @pytest.mark.asyncio
    async def test_initialize_from_default_forms(self, store):
        await store.set("users/u1/forms/A", {"goals": "x"})
        await store.set("users/u1/forms/A_timestamp", "2024-01-01T00:00:00+00:00")
        await store.set("users/u1/sharedFields", {"organizationName": "Acme"})
        assert await initialize_project_from_default(store, "u1", "p1") is True
        assert await store.get("users/u1/projectForms/p1/A") == {"goals": "x"}
        assert await store.get("users/u1/projectForms/p1/sharedFields") == {"organizationName": "Acme"}

    @pytest.mark.asyncio
    async def test_initialize_without_defaults(self, store):
        assert await initialize_project_from_default(store, "u1", "p1") is False

    @pytest.mark.asyncio
    async def test_events(self, store):
        manager = StreamManager()
        queue = await manager.subscribe("u1")
        project = await create_project(store, "u1", "Pilot", stream_manager=manager)
        await update_project(store, "u1", project.id, description="d", stream_manager=manager)
        await delete_project(store, "u1", project.id, stream_manager=manager)
        types = [(await asyncio.wait_for(queue.get(), timeout=1.0)).event_type for _ in range(3)]
        assert types == [
            FormEventType.PROJECT_CREATED,
            FormEventType.PROJECT_UPDATED,
            FormEventType.PROJECT_DELETED,
        ]
