from __future__ import annotations

from datetime import datetime
from typing import Protocol

from lobby_chat.application.dto.identity import Identity
from lobby_chat.domain.entities.ban import BanRecord


class AccountReader(Protocol):
    async def get_identity(self, account_id: int) -> Identity | None: ...

    async def get_ban(self, account_id: int) -> BanRecord | None: ...


class AccountWriter(Protocol):
    async def set_ban(
        self,
        account_id: int,
        reason: str,
        expires_at: datetime | None,
    ) -> bool:
        """Flag the account as banned. Return False if it does not exist."""
        ...
