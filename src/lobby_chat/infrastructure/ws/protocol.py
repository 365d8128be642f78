"""WebSocket message envelope models."""
from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class ClientEvent(StrEnum):
    JOIN = "join"
    SEND_MESSAGE = "send_message"
    PING = "ping"


class ServerEvent(StrEnum):
    RECENT_MESSAGES = "recent_messages"
    NEW_MESSAGE = "new_message"
    PRESENCE = "presence"
    FORCED_DISCONNECT = "forced_disconnect"
    ERROR = "error"
    PONG = "pong"


class CloseCode:
    GOING_AWAY = 1001
    INVALID_CREDENTIAL = 4001
    BANNED = 4003
    SUPERSEDED = 4009


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # join | send_message | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # recent_messages | new_message | presence | forced_disconnect | error | pong
    data: dict[str, Any] = {}
