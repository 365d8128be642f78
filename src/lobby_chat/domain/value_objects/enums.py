from __future__ import annotations

from enum import StrEnum


class BanTargetKind(StrEnum):
    ACCOUNT = "account"
    ADDRESS = "address"


class SessionState(StrEnum):
    PENDING = "pending"
    ADMITTED = "admitted"
    ACTIVE = "active"
    DISCONNECTED = "disconnected"
    EVICTED = "evicted"
    SUPERSEDED = "superseded"

    @property
    def is_terminal(self) -> bool:
        return self in (
            SessionState.DISCONNECTED,
            SessionState.EVICTED,
            SessionState.SUPERSEDED,
        )


class DisconnectReason(StrEnum):
    BANNED = "banned"
    SUPERSEDED = "superseded"
