"""Audit hooks -- logs writes to the form store for the audit trail."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def log_store_write(
    user_id: str,
    action: str,
    path: str,
    data: Any = None,
) -> dict[str, Any]:
    """Record a store write in the audit log.

    Returns the audit entry dict for downstream persistence.
    """
    entry = {
        "user_id": user_id,
        "action": action,
        "path": path,
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        "fields": sorted(data) if isinstance(data, dict) else None,
    }
    logger.info("Store write audit: %s %s (%s)", action, path, user_id)
    return entry
