from __future__ import annotations

from datetime import timedelta

import pytest

from lobby_chat.application.exceptions import AlreadyBannedError, InvalidCredentialError
from lobby_chat.domain.entities.ban import BanRecord
from lobby_chat.domain.value_objects.enums import BanTargetKind, SessionState
from lobby_chat.infrastructure.ws.protocol import CloseCode, ServerEvent, WsInbound
from lobby_chat.services import session_service
from tests.conftest import make_connection, make_message


def _frame(type_, **data):
    return WsInbound(type=type_, data=data)


@pytest.mark.asyncio
async def test_join_admits_and_replays_history(ctx, store):
    store.messages = [make_message("earlier")]
    connection, transport = make_connection()

    session = await session_service.join(ctx, connection, "alice-token")
    await connection.flush()

    assert session is not None
    assert session.display_name == "alice"
    assert connection.state == SessionState.ACTIVE
    assert transport.types() == [ServerEvent.PRESENCE, ServerEvent.RECENT_MESSAGES]
    assert transport.of_type(ServerEvent.RECENT_MESSAGES)[0]["messages"][0]["body"] == "earlier"


@pytest.mark.asyncio
async def test_replay_is_not_sent_to_others(ctx):
    first, first_t = make_connection()
    await session_service.join(ctx, first, "alice-token")
    second, _ = make_connection()
    await session_service.join(ctx, second, "bob-token")
    await first.flush()

    assert len(first_t.of_type(ServerEvent.RECENT_MESSAGES)) == 1
    assert len(first_t.of_type(ServerEvent.PRESENCE)) == 2


@pytest.mark.asyncio
async def test_invalid_credential_closes_without_admission(ctx):
    connection, transport = make_connection()

    assert await session_service.join(ctx, connection, "forged") is None
    await connection.wait_closed()

    assert transport.close_code == CloseCode.INVALID_CREDENTIAL
    assert transport.of_type(ServerEvent.ERROR)[0]["code"] == "invalid_credential"
    assert len(ctx.registry) == 0


@pytest.mark.asyncio
async def test_admit_raises_for_invalid_credential(ctx):
    connection, _ = make_connection()
    with pytest.raises(InvalidCredentialError):
        await session_service.admit(ctx, connection, "")


@pytest.mark.asyncio
async def test_banned_account_is_refused_with_detail(ctx, bans, clock):
    until = clock.now() + timedelta(hours=1)
    bans.accounts[42] = BanRecord(BanTargetKind.ACCOUNT, "42", "spam", until)
    connection, transport = make_connection()

    assert await session_service.join(ctx, connection, "alice-token") is None
    await connection.wait_closed()

    assert transport.close_code == CloseCode.BANNED
    assert transport.of_type(ServerEvent.FORCED_DISCONNECT) == [
        {"reason": "banned", "detail": {"reason": "spam", "expires_at": until.isoformat()}},
    ]
    assert len(ctx.registry) == 0


@pytest.mark.asyncio
async def test_banned_address_is_refused(ctx, bans):
    bans.addresses["10.6.6.6"] = BanRecord(BanTargetKind.ADDRESS, "10.6.6.6", "abuse")
    connection, _ = make_connection("10.6.6.6")

    with pytest.raises(AlreadyBannedError) as excinfo:
        await session_service.admit(ctx, connection, "alice-token")
    assert excinfo.value.status.reason == "abuse"


@pytest.mark.asyncio
async def test_expired_ban_does_not_block_join(ctx, bans, clock):
    bans.accounts[42] = BanRecord(
        BanTargetKind.ACCOUNT, "42", "old", clock.now() - timedelta(minutes=1),
    )
    connection, _ = make_connection()

    assert await session_service.join(ctx, connection, "alice-token") is not None


@pytest.mark.asyncio
async def test_send_message_frame_broadcasts(ctx, store):
    alice_conn, alice_t = make_connection()
    bob_conn, bob_t = make_connection()
    alice = await session_service.join(ctx, alice_conn, "alice-token")
    await session_service.join(ctx, bob_conn, "bob-token")

    await session_service.handle_frame(ctx, alice, _frame("send_message", body="hi bob"))
    await alice_conn.flush()
    await bob_conn.flush()

    assert [m.body for m in store.messages] == ["hi bob"]
    assert bob_t.of_type(ServerEvent.NEW_MESSAGE)[0]["message"]["display_name"] == "alice"
    assert len(alice_t.of_type(ServerEvent.NEW_MESSAGE)) == 1


@pytest.mark.asyncio
async def test_empty_send_is_silently_ignored(ctx, store):
    connection, transport = make_connection()
    session = await session_service.join(ctx, connection, "alice-token")
    await connection.flush()
    before = list(transport.frames)

    await session_service.handle_frame(ctx, session, _frame("send_message", body="   "))
    await connection.flush()

    assert transport.frames == before
    assert store.messages == []


@pytest.mark.asyncio
async def test_too_long_send_reports_error(ctx):
    connection, transport = make_connection()
    session = await session_service.join(ctx, connection, "alice-token")

    await session_service.handle_frame(ctx, session, _frame("send_message", body="x" * 500))
    await connection.flush()

    assert transport.of_type(ServerEvent.ERROR)[0]["code"] == "message_too_long"
    assert transport.of_type(ServerEvent.NEW_MESSAGE) == []


@pytest.mark.asyncio
async def test_non_text_body_is_rejected(ctx):
    connection, transport = make_connection()
    session = await session_service.join(ctx, connection, "alice-token")

    await session_service.handle_frame(ctx, session, _frame("send_message", body=["x"]))
    await connection.flush()

    assert transport.of_type(ServerEvent.ERROR) == [{"code": "invalid_data"}]


@pytest.mark.asyncio
async def test_ping_repeat_join_and_unknown_frames(ctx):
    connection, transport = make_connection()
    session = await session_service.join(ctx, connection, "alice-token")

    await session_service.handle_frame(ctx, session, _frame("ping"))
    await session_service.handle_frame(ctx, session, _frame("join", token="alice-token"))
    await session_service.handle_frame(ctx, session, _frame("typing"))
    await connection.flush()

    assert len(transport.of_type(ServerEvent.PONG)) == 1
    assert transport.of_type(ServerEvent.ERROR) == [
        {"code": "already_joined"},
        {"code": "unknown_type", "type": "typing"},
    ]


@pytest.mark.asyncio
async def test_frames_after_eviction_are_ignored(ctx, store):
    connection, _ = make_connection()
    session = await session_service.join(ctx, connection, "alice-token")
    connection.close(CloseCode.BANNED, state=SessionState.EVICTED)

    await session_service.handle_frame(ctx, session, _frame("send_message", body="late"))

    assert store.messages == []


def test_credential_from_frame():
    assert session_service.credential_from_frame(_frame("join", token="t")) == "t"
    assert session_service.credential_from_frame(_frame("join", token=5)) is None
    assert session_service.credential_from_frame(_frame("ping")) is None


@pytest.mark.asyncio
async def test_reject_join_closes_with_reason():
    connection, transport = make_connection()

    session_service.reject_join(connection, "join_required", "ping")
    await connection.wait_closed()

    assert transport.close_code == CloseCode.INVALID_CREDENTIAL
    assert transport.of_type(ServerEvent.ERROR) == [{"code": "join_required", "detail": "ping"}]


@pytest.mark.asyncio
async def test_leave_twice_announces_once(ctx):
    alice_conn, alice_t = make_connection()
    bob_conn, _ = make_connection()
    await session_service.join(ctx, alice_conn, "alice-token")
    await session_service.join(ctx, bob_conn, "bob-token")

    assert await session_service.leave(ctx, bob_conn) is not None
    assert await session_service.leave(ctx, bob_conn) is None
    await alice_conn.flush()

    rosters = alice_t.of_type(ServerEvent.PRESENCE)
    assert len(rosters) == 3
    assert [u["display_name"] for u in rosters[-1]["users"]] == ["alice"]
