from typing import Optional

from backend.config.settings import Settings

from .base import (
    FormStore,
    MalformedDataError,
    StoreError,
    StoreTimeoutError,
    StoreUnavailableError,
)
from .firebase_store import FirebaseFormStore
from .memory_store import InMemoryFormStore


def create_store(settings: Optional[Settings] = None) -> FormStore:
    """Firebase when a database URL is configured, in-memory otherwise."""
    settings = settings or Settings()
    if settings.firebase_database_url:
        return FirebaseFormStore(settings=settings)
    return InMemoryFormStore()


__all__ = [
    "FormStore",
    "FirebaseFormStore",
    "InMemoryFormStore",
    "MalformedDataError",
    "StoreError",
    "StoreTimeoutError",
    "StoreUnavailableError",
    "create_store",
]
