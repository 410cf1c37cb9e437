from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StoreError(Exception):
    """A document store round-trip failed."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class StoreUnavailableError(StoreError):
    """The store could not be reached or refused the request."""


class StoreTimeoutError(StoreError):
    """The store did not answer within the configured timeout."""


class MalformedDataError(StoreError):
    """The store answered with something that is not valid JSON."""


class FormStore(ABC):
    """Abstract base for the hierarchical JSON document store.

    Paths are slash-separated keys such as ``users/{uid}/forms/A``.
    A missing node reads as ``None``.
    """

    @abstractmethod
    async def get(self, path: str) -> Any:
        """Return the JSON value stored at ``path`` or None."""
        ...

    @abstractmethod
    async def set(self, path: str, value: Any) -> None:
        """Replace the value at ``path``."""
        ...

    @abstractmethod
    async def update(self, path: str, values: dict[str, Any]) -> None:
        """Merge ``values`` into the object at ``path``."""
        ...

    @abstractmethod
    async def remove(self, path: str) -> None:
        """Delete the node at ``path`` and everything below it."""
        ...

    @abstractmethod
    async def push(self, path: str, value: Any) -> str:
        """Append ``value`` under a generated child key and return the key."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify the store is reachable."""
        ...

    async def aclose(self) -> None:
        """Release network resources, if any."""
        return None
