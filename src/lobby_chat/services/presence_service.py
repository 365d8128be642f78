from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from lobby_chat.domain.entities.session import PresenceEntry, Session
from lobby_chat.infrastructure.ws.protocol import ServerEvent
from lobby_chat.infrastructure.ws.registry import SessionRegistry

logger = logging.getLogger(__name__)


def roster_payload(entries: Sequence[PresenceEntry]) -> dict[str, Any]:
    return {
        "users": [
            {"display_name": e.display_name, "is_admin": e.is_admin}
            for e in entries
        ],
    }


def deliver_roster(sessions: Sequence[Session]) -> int:
    """Push the roster built from `sessions` to each of them.

    Must run with the registry locked; the registry calls it as a
    membership listener after every admit and removal.
    """
    payload = roster_payload([s.presence_entry() for s in sessions])
    delivered = 0
    for session in sessions:
        if session.connection.send(ServerEvent.PRESENCE, payload):
            delivered += 1
        else:
            logger.debug("Presence not delivered to %s", session.connection_id)
    return delivered


def attach(registry: SessionRegistry) -> None:
    """Announce presence on every membership change of `registry`."""
    registry.add_listener(deliver_roster)


async def announce(registry: SessionRegistry) -> int:
    return await registry.visit(deliver_roster)
