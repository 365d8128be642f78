from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    """Decode the `{"event": ..., "data": {...}}` envelope published on the ban channel."""
    data = json.loads(raw)
    return data["event"], data["data"]


def parse_datetime(value: str | None) -> datetime | None:
    """Parse an optional ISO-8601 timestamp. Naive means UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
