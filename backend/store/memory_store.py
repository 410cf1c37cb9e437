"""In-memory FormStore used for local development and tests."""

from __future__ import annotations

import copy
from typing import Any, Optional
from uuid import uuid4

from .base import FormStore


def _split(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]


class InMemoryFormStore(FormStore):
    """Nested-dict store with Realtime Database semantics.

    Writing ``None`` deletes a node; empty parents disappear with it.
    Reads and writes deep-copy so callers never share state with the store.
    """

    def __init__(self, data: Optional[dict[str, Any]] = None) -> None:
        self._root: dict[str, Any] = copy.deepcopy(data) if data else {}

    async def get(self, path: str) -> Any:
        node: Any = self._root
        for part in _split(path):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node)

    async def set(self, path: str, value: Any) -> None:
        parts = _split(path)
        if not parts:
            self._root = copy.deepcopy(value) if isinstance(value, dict) else {}
            return
        if value is None:
            self._delete(parts)
            return
        parent = self._root
        for part in parts[:-1]:
            child = parent.get(part)
            if not isinstance(child, dict):
                child = {}
                parent[part] = child
            parent = child
        parent[parts[-1]] = copy.deepcopy(value)

    async def update(self, path: str, values: dict[str, Any]) -> None:
        base = path.strip("/")
        for key, value in values.items():
            await self.set(f"{base}/{key}" if base else key, value)

    async def remove(self, path: str) -> None:
        self._delete(_split(path))

    async def push(self, path: str, value: Any) -> str:
        key = uuid4().hex[:20]
        await self.set(f"{path.strip('/')}/{key}", value)
        return key

    async def health_check(self) -> bool:
        return True

    def _delete(self, parts: list[str]) -> None:
        if not parts:
            self._root = {}
            return
        trail: list[tuple[dict[str, Any], str]] = []
        node: Any = self._root
        for part in parts[:-1]:
            if not isinstance(node, dict) or part not in node:
                return
            trail.append((node, part))
            node = node[part]
        if isinstance(node, dict):
            node.pop(parts[-1], None)
        # Prune parents left empty by the delete.
        for parent, key in reversed(trail):
            if parent[key] == {}:
                del parent[key]
