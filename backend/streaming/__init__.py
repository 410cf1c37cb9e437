"""SSE streaming of form and project change events."""

from .events import FormEventType, SSEEvent
from .manager import StreamManager

__all__ = ["FormEventType", "SSEEvent", "StreamManager"]
