from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from lobby_chat.domain.value_objects.enums import BanTargetKind


@dataclass(frozen=True, slots=True)
class BanRecord:
    target_kind: BanTargetKind
    target: str
    reason: str
    expires_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        """A ban without expiry is permanent; an expired one is inactive."""
        return self.expires_at is None or self.expires_at > now
