from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from lobby_chat.api.middleware.correlation_id import correlation_id_ctx
from lobby_chat.config import settings
from lobby_chat.domain.entities.session import Session
from lobby_chat.infrastructure.ws.connection import Connection
from lobby_chat.infrastructure.ws.protocol import ServerEvent, WsInbound
from lobby_chat.services import session_service
from lobby_chat.services.session_service import ChatContext

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

INTERNAL_ERROR = 1011


def _client_address(ws: WebSocket) -> str:
    return ws.client.host if ws.client else "unknown"


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    ctx: ChatContext = websocket.app.state.chat
    await websocket.accept()

    connection = Connection(
        websocket,
        _client_address(websocket),
        queue_size=settings.WS_SEND_QUEUE_SIZE,
    )
    correlation_id_ctx.set(connection.id)
    connection.start()

    session = await _join(websocket, ctx, connection, token)
    if session is None:
        await connection.wait_closed()
        return

    heartbeat_task = asyncio.create_task(
        _heartbeat(connection), name=f"ws-heartbeat-{connection.id}",
    )
    reader = asyncio.create_task(
        _read_loop(websocket, ctx, session), name=f"ws-reader-{connection.id}",
    )
    closer = asyncio.create_task(
        connection.wait_closed(), name=f"ws-closer-{connection.id}",
    )
    try:
        # Ends when the client leaves or the core closes the connection.
        await asyncio.wait({reader, closer}, return_when=asyncio.FIRST_COMPLETED)
        if reader.done() and not reader.cancelled():
            exc = reader.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error("WS error for %s", connection.id, exc_info=exc)
    finally:
        heartbeat_task.cancel()
        reader.cancel()
        await session_service.leave(ctx, connection)
        if connection.closed:
            await closer
        else:
            connection.abort()
            closer.cancel()


async def _join(
    ws: WebSocket,
    ctx: ChatContext,
    connection: Connection,
    token: str | None,
) -> Session | None:
    """Read the credential (query string or first `join` frame) and admit."""
    if token is None:
        try:
            raw = await asyncio.wait_for(
                ws.receive_text(), timeout=settings.WS_JOIN_TIMEOUT_SECONDS,
            )
            frame = WsInbound.model_validate_json(raw)
        except WebSocketDisconnect:
            connection.abort()
            return None
        except asyncio.TimeoutError:
            session_service.reject_join(connection, "join_timeout")
            return None
        except ValueError:
            session_service.reject_join(connection, "invalid_payload")
            return None

        token = session_service.credential_from_frame(frame)
        if token is None:
            session_service.reject_join(connection, "join_required", frame.type)
            return None

    try:
        return await session_service.join(ctx, connection, token)
    except Exception:
        logger.exception("Join failed for %s", connection.id)
        connection.close(INTERNAL_ERROR, "internal error")
        return None


async def _heartbeat(connection: Connection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    while not connection.closed:
        await asyncio.sleep(interval)
        connection.send(ServerEvent.PONG, {})


async def _read_loop(ws: WebSocket, ctx: ChatContext, session: Session) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            frame = WsInbound.model_validate_json(raw)
        except ValueError:
            session.connection.send(ServerEvent.ERROR, {"code": "invalid_payload"})
            continue
        await session_service.handle_frame(ctx, session, frame)
