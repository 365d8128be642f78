from __future__ import annotations

from typing import Protocol

from lobby_chat.domain.entities.message import Message


class MessageStore(Protocol):
    async def append(self, message: Message) -> None: ...

    async def recent_messages(self, limit: int) -> list[Message]:
        """Return at most `limit` latest messages, oldest first."""
        ...
