"""Path builders for the form store layout."""

from __future__ import annotations

from typing import Optional

from backend.models.enums import FormLetter

# Characters the Realtime Database refuses in keys.
_FORBIDDEN = set("/.#$[]")


class InvalidKeyError(ValueError):
    """A user or project id cannot be used as a store key."""


def _segment(value: str, label: str) -> str:
    if not value or not value.strip():
        raise InvalidKeyError(f"{label} must not be empty")
    if _FORBIDDEN & set(value):
        raise InvalidKeyError(f"{label} contains a forbidden character: {value!r}")
    return value


def form_prefix(user_id: str, project_id: Optional[str] = None) -> str:
    """Root under which a user's (or a project's) forms live."""
    user = _segment(user_id, "user_id")
    if project_id:
        return f"users/{user}/projectForms/{_segment(project_id, 'project_id')}"
    return f"users/{user}/forms"


def form_path(user_id: str, letter: FormLetter, project_id: Optional[str] = None) -> str:
    return f"{form_prefix(user_id, project_id)}/{FormLetter(letter).value}"


def form_timestamp_path(user_id: str, letter: FormLetter, project_id: Optional[str] = None) -> str:
    return f"{form_path(user_id, letter, project_id)}_timestamp"


def shared_fields_path(user_id: str, project_id: Optional[str] = None) -> str:
    user = _segment(user_id, "user_id")
    if project_id:
        return f"users/{user}/projectForms/{_segment(project_id, 'project_id')}/sharedFields"
    return f"users/{user}/sharedFields"


def projects_path(user_id: str) -> str:
    return f"users/{_segment(user_id, 'user_id')}/projects"


def project_path(user_id: str, project_id: str) -> str:
    return f"{projects_path(user_id)}/{_segment(project_id, 'project_id')}"
