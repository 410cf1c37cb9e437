from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class RoiProject:
    """A named ROI analysis with its own set of forms."""

    id: str
    name: str
    description: str = ""
    created_at: int = 0
    updated_at: int = 0

    @classmethod
    def from_store(cls, project_id: str, raw: dict[str, Any]) -> "RoiProject":
        return cls(
            id=str(raw.get("id") or project_id),
            name=str(raw.get("name") or ""),
            description=str(raw.get("description") or ""),
            created_at=int(raw.get("createdAt") or 0),
            updated_at=int(raw.get("updatedAt") or 0),
        )

    def to_store(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "id": data["id"],
            "name": data["name"],
            "description": data["description"],
            "createdAt": data["created_at"],
            "updatedAt": data["updated_at"],
        }
