from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from lobby_chat.domain.value_objects.enums import BanTargetKind

# A century; longer durations overflow datetime arithmetic.
MAX_BAN_MINUTES = 525_600 * 100


class AccountBanRequest(BaseModel):
    account_id: int
    reason: str = Field(min_length=1, max_length=500)
    duration_minutes: float | None = Field(None, gt=0, le=MAX_BAN_MINUTES)  # None = permanent


class AddressBanRequest(BaseModel):
    address: str = Field(min_length=1, max_length=64)
    reason: str = Field(min_length=1, max_length=500)
    duration_minutes: float | None = Field(None, gt=0, le=MAX_BAN_MINUTES)


class BanResponse(BaseModel):
    target_kind: BanTargetKind
    target: str
    reason: str
    expires_at: datetime | None
    evicted_sessions: int
