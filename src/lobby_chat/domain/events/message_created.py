from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from lobby_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class MessageCreated:
    message_id: UUID
    display_name: str
    is_admin: bool
    body: str
    created_at: datetime

    @classmethod
    def from_message(cls, message: Message) -> MessageCreated:
        return cls(
            message_id=message.id,
            display_name=message.display_name,
            is_admin=message.is_admin,
            body=message.body,
            created_at=message.created_at,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.message_id),
            "display_name": self.display_name,
            "is_admin": self.is_admin,
            "body": self.body,
            "created_at": self.created_at.isoformat(),
        }
