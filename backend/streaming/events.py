"""SSE event types and serialization for form-change notifications."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class FormEventType(str, Enum):
    """All event types emitted when a user's stored data changes."""

    # Forms
    FORM_SAVED = "form_saved"
    SHARED_FIELDS_UPDATED = "shared_fields_updated"

    # Projects
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_DELETED = "project_deleted"


@dataclass
class SSEEvent:
    """A single Server-Sent Event ready for wire serialization."""

    event_type: FormEventType
    data: dict[str, Any]
    sequence_id: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def to_sse_string(self) -> str:
        """Serialize to SSE wire format.

        Format:
            event: <type>
            data: <json>
            id: <seq>

            (terminated by double newline)
        """
        payload = {
            **self.data,
            "type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
        }
        data_json = json.dumps(payload, default=str)
        return f"event: {self.event_type.value}\ndata: {data_json}\nid: {self.sequence_id}\n\n"
