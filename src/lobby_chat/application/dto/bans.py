from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from lobby_chat.domain.entities.ban import BanRecord
from lobby_chat.domain.value_objects.enums import DisconnectReason


@dataclass(frozen=True, slots=True)
class BanStatus:
    active: bool
    reason: str = ""
    expires_at: datetime | None = None

    @classmethod
    def inactive(cls) -> BanStatus:
        return cls(active=False)

    @classmethod
    def from_record(cls, record: BanRecord | None, now: datetime) -> BanStatus:
        if record is None or not record.is_active(now):
            return cls.inactive()
        return cls(active=True, reason=record.reason, expires_at=record.expires_at)

    def detail(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass(frozen=True, slots=True)
class ForcedDisconnect:
    """Notice sent to a connection right before the core closes it."""

    reason: DisconnectReason
    detail: dict[str, Any] | None = None

    @classmethod
    def banned(cls, status: BanStatus) -> ForcedDisconnect:
        return cls(reason=DisconnectReason.BANNED, detail=status.detail())

    @classmethod
    def superseded(cls) -> ForcedDisconnect:
        return cls(
            reason=DisconnectReason.SUPERSEDED,
            detail={"message": "Signed in elsewhere"},
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"reason": self.reason.value}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload
