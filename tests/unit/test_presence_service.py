from __future__ import annotations

import pytest

from lobby_chat.domain.entities.session import PresenceEntry
from lobby_chat.infrastructure.ws.protocol import ServerEvent
from lobby_chat.infrastructure.ws.registry import SessionRegistry
from lobby_chat.services import presence_service
from tests.conftest import make_connection, make_identity


def test_roster_payload_keeps_order():
    payload = presence_service.roster_payload(
        [PresenceEntry("ann", False), PresenceEntry("root", True)],
    )
    assert payload == {
        "users": [
            {"display_name": "ann", "is_admin": False},
            {"display_name": "root", "is_admin": True},
        ],
    }


@pytest.mark.asyncio
async def test_every_membership_change_announces_once(registry):
    c1, t1 = make_connection()
    c2, _ = make_connection()
    await registry.admit(make_identity(1, "ann"), c1, "10.0.0.1")
    await registry.admit(make_identity(2, "root", is_admin=True), c2, "10.0.0.2")
    await registry.remove(c2.id)
    await c1.flush()

    rosters = t1.of_type(ServerEvent.PRESENCE)
    assert len(rosters) == 3
    assert rosters[1]["users"] == [
        {"display_name": "ann", "is_admin": False},
        {"display_name": "root", "is_admin": True},
    ]
    assert rosters[2]["users"] == [{"display_name": "ann", "is_admin": False}]


@pytest.mark.asyncio
async def test_attach_is_idempotent(registry):
    presence_service.attach(registry)
    connection, transport = make_connection()
    await registry.admit(make_identity(1), connection, "10.0.0.1")
    await connection.flush()

    assert len(transport.of_type(ServerEvent.PRESENCE)) == 1


@pytest.mark.asyncio
async def test_announce_skips_closed_recipients():
    registry = SessionRegistry()
    c1, t1 = make_connection()
    c2, t2 = make_connection()
    await registry.admit(make_identity(1), c1, "10.0.0.1")
    await registry.admit(make_identity(2), c2, "10.0.0.2")
    c2.close(1000)

    delivered = await presence_service.announce(registry)
    await c1.flush()
    await c2.wait_closed()

    assert delivered == 1
    assert len(t1.of_type(ServerEvent.PRESENCE)) == 1
    assert t2.of_type(ServerEvent.PRESENCE) == []
