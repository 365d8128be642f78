from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lobby_chat.infrastructure.ws.connection import Connection


@dataclass(frozen=True, slots=True)
class PresenceEntry:
    display_name: str
    is_admin: bool


@dataclass(frozen=True, slots=True, eq=False)
class Session:
    """One admitted connection. Owned by the session registry."""

    account_id: int
    display_name: str
    is_admin: bool
    connection: Connection
    origin_address: str
    joined_at: datetime

    @property
    def connection_id(self) -> str:
        return self.connection.id

    def presence_entry(self) -> PresenceEntry:
        return PresenceEntry(display_name=self.display_name, is_admin=self.is_admin)
