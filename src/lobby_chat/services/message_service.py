from __future__ import annotations

import logging
import uuid

from lobby_chat.application.exceptions import EmptyMessageError, MessageTooLongError
from lobby_chat.application.ports.clock import Clock, SystemClock
from lobby_chat.application.ports.messages import MessageStore
from lobby_chat.domain.entities.message import Message
from lobby_chat.domain.entities.session import Session
from lobby_chat.domain.events.message_created import MessageCreated
from lobby_chat.infrastructure.ws.protocol import ServerEvent
from lobby_chat.infrastructure.ws.registry import SessionRegistry

logger = logging.getLogger(__name__)

_default_clock = SystemClock()


async def submit_message(
    session: Session,
    body: str | None,
    store: MessageStore,
    registry: SessionRegistry,
    *,
    clock: Clock = _default_clock,
    max_length: int | None = None,
) -> Message:
    """Persist a chat message and broadcast it to every live session.

    Persistence is best-effort: a failing store is logged and the message
    is still delivered live.
    """
    if body is None or not body.strip():
        raise EmptyMessageError("Message body is empty")
    if max_length is not None and len(body) > max_length:
        raise MessageTooLongError(f"Message exceeds {max_length} characters")

    msg = Message(
        id=uuid.uuid4(),
        display_name=session.display_name,
        body=body,
        is_admin=session.is_admin,
        created_at=clock.now(),
    )

    try:
        await store.append(msg)
    except Exception:
        logger.exception("Failed to persist message %s from %s", msg.id, session.display_name)

    payload = {"message": MessageCreated.from_message(msg).to_payload()}

    def _deliver(target: Session) -> bool:
        target.connection.send(ServerEvent.NEW_MESSAGE, payload)
        return target.connection.closed

    await registry.for_each(_deliver)
    return msg


async def replay_recent(
    session: Session,
    store: MessageStore,
    limit: int = 50,
) -> int:
    """Send the latest `limit` messages, oldest first, to `session` only."""
    try:
        messages = await store.recent_messages(limit)
    except Exception:
        logger.exception("Failed to load recent messages for %s", session.display_name)
        messages = []

    messages = messages[-limit:] if limit > 0 else []
    session.connection.send(
        ServerEvent.RECENT_MESSAGES,
        {"messages": [MessageCreated.from_message(m).to_payload() for m in messages]},
    )
    return len(messages)
