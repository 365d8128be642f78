from __future__ import annotations

from datetime import datetime
from typing import Protocol

from lobby_chat.application.dto.bans import BanStatus
from lobby_chat.domain.entities.ban import BanRecord
from lobby_chat.domain.value_objects.enums import BanTargetKind


class BanDirectory(Protocol):
    """Answers whether a ban is active right now. Never mutated by the core."""

    async def is_account_banned(self, account_id: int) -> BanStatus: ...

    async def is_address_banned(self, address: str) -> BanStatus: ...


class AdminBanAction(Protocol):
    """Called by the admin handler right after it durably records a ban."""

    async def notify(
        self,
        target_kind: BanTargetKind,
        target: str,
        reason: str,
        expires_at: datetime | None,
    ) -> int: ...


class BanWriter(Protocol):
    """Durable ban storage used by the admin handler."""

    async def ban_account(
        self,
        account_id: int,
        reason: str,
        expires_at: datetime | None,
    ) -> BanRecord: ...

    async def ban_address(
        self,
        address: str,
        reason: str,
        expires_at: datetime | None,
    ) -> BanRecord: ...
