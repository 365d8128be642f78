from __future__ import annotations

from typing import Protocol

from lobby_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_recent(self, *, limit: int = 50) -> list[Message]: ...


class MessageWriter(Protocol):
    async def add(self, message: Message) -> None: ...
