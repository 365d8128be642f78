from __future__ import annotations

from typing import Protocol

from lobby_chat.domain.entities.ban import BanRecord


class AddressBanReader(Protocol):
    async def get(self, address: str) -> BanRecord | None:
        """Return the stored ban for `address`, expired or not."""
        ...


class AddressBanWriter(Protocol):
    async def upsert(self, record: BanRecord) -> None: ...
