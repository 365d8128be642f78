from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def expiry_after(clock: Clock, minutes: float | None) -> datetime | None:
    """Expiry `minutes` from now, or None for a permanent ban."""
    if minutes is None:
        return None
    return clock.now() + timedelta(minutes=minutes)
