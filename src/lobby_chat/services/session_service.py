"""Connection lifecycle: join, inbound frame dispatch, leave."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from lobby_chat.application.dto.bans import BanStatus, ForcedDisconnect
from lobby_chat.application.exceptions import (
    AlreadyBannedError,
    EmptyMessageError,
    InvalidCredentialError,
    MessageTooLongError,
)
from lobby_chat.application.ports.auth import IdentityProvider
from lobby_chat.application.ports.bans import BanDirectory
from lobby_chat.application.ports.clock import Clock, SystemClock
from lobby_chat.application.ports.messages import MessageStore
from lobby_chat.domain.entities.session import Session
from lobby_chat.domain.value_objects.enums import SessionState
from lobby_chat.infrastructure.ws.connection import Connection
from lobby_chat.infrastructure.ws.protocol import (
    ClientEvent,
    CloseCode,
    ServerEvent,
    WsInbound,
)
from lobby_chat.infrastructure.ws.registry import SessionRegistry
from lobby_chat.services import message_service

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChatContext:
    """Collaborators shared by every connection of the process."""

    registry: SessionRegistry
    identities: IdentityProvider
    bans: BanDirectory
    store: MessageStore
    clock: Clock = field(default_factory=SystemClock)
    history_limit: int = 50
    max_message_length: int | None = None


async def check_bans(bans: BanDirectory, account_id: int, address: str) -> BanStatus:
    """Return the first active ban on the account or the address."""
    status = await bans.is_account_banned(account_id)
    if status.active:
        return status
    return await bans.is_address_banned(address)


async def admit(ctx: ChatContext, connection: Connection, credential: str) -> Session:
    """Verify, check bans, register and replay history for a new connection.

    Raises InvalidCredentialError or AlreadyBannedError. Lookups happen
    before the registry lock is taken.
    """
    identity = await ctx.identities.verify(credential)
    status = await check_bans(ctx.bans, identity.account_id, connection.origin_address)
    if status.active:
        raise AlreadyBannedError(status)

    session = await ctx.registry.admit(identity, connection, connection.origin_address)
    await message_service.replay_recent(session, ctx.store, ctx.history_limit)
    if connection.state == SessionState.ADMITTED:
        connection.state = SessionState.ACTIVE
    return session


async def join(ctx: ChatContext, connection: Connection, credential: str) -> Session | None:
    """Admit the connection or close it with the reason it was refused."""
    try:
        return await admit(ctx, connection, credential)
    except InvalidCredentialError as exc:
        logger.info("Join refused from %s: %s", connection.origin_address, exc.detail)
        connection.close(
            CloseCode.INVALID_CREDENTIAL,
            "invalid credential",
            notice=(ServerEvent.ERROR, {"code": "invalid_credential", "detail": exc.detail}),
        )
    except AlreadyBannedError as exc:
        logger.info("Join refused from %s: banned (%s)", connection.origin_address, exc.detail)
        connection.close(
            CloseCode.BANNED,
            "banned",
            notice=(ServerEvent.FORCED_DISCONNECT, ForcedDisconnect.banned(exc.status).to_payload()),
        )
    return None


def reject_join(connection: Connection, code: str, detail: str = "") -> None:
    """Close a connection that never produced a usable join frame."""
    connection.close(
        CloseCode.INVALID_CREDENTIAL,
        "join required",
        notice=(ServerEvent.ERROR, {"code": code, "detail": detail}),
    )


def credential_from_frame(frame: WsInbound) -> str | None:
    if frame.type != ClientEvent.JOIN:
        return None
    token = frame.data.get("token")
    return token if isinstance(token, str) else None


async def handle_frame(ctx: ChatContext, session: Session, frame: WsInbound) -> None:
    connection = session.connection
    if connection.closed:
        return

    if frame.type == ClientEvent.SEND_MESSAGE:
        await _handle_send(ctx, session, frame.data)

    elif frame.type == ClientEvent.PING:
        connection.send(ServerEvent.PONG, {})

    elif frame.type == ClientEvent.JOIN:
        connection.send(ServerEvent.ERROR, {"code": "already_joined"})

    else:
        connection.send(ServerEvent.ERROR, {"code": "unknown_type", "type": frame.type})


async def _handle_send(ctx: ChatContext, session: Session, data: dict[str, Any]) -> None:
    body = data.get("body", data.get("message"))
    if body is not None and not isinstance(body, str):
        session.connection.send(ServerEvent.ERROR, {"code": "invalid_data"})
        return
    try:
        await message_service.submit_message(
            session,
            body,
            ctx.store,
            ctx.registry,
            clock=ctx.clock,
            max_length=ctx.max_message_length,
        )
    except EmptyMessageError:
        pass
    except MessageTooLongError as exc:
        session.connection.send(
            ServerEvent.ERROR, {"code": "message_too_long", "detail": exc.detail},
        )


async def leave(ctx: ChatContext, connection: Connection) -> Session | None:
    """Release the registry entry of a finished connection. Safe to repeat."""
    session = await ctx.registry.remove(connection.id)
    if session is not None:
        logger.info("%s left (online=%d)", session.display_name, len(ctx.registry))
    return session
