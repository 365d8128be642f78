"""Seed development data: creates the schema, sample accounts and lobby messages."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt

from lobby_chat.config import settings
from lobby_chat.domain.entities.message import Message
from lobby_chat.infrastructure.db.base import Base
from lobby_chat.infrastructure.db.models import AccountModel
from lobby_chat.infrastructure.db.session import AsyncSessionLocal, dispose_engine, engine
from lobby_chat.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)

ACCOUNTS = [
    (1, "admin", True),
    (42, "alice", False),
    (43, "bob", False),
]


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        for account_id, username, is_admin in ACCOUNTS:
            if await uow.accounts.get_identity(account_id) is None:
                session.add(AccountModel(id=account_id, username=username, is_admin=is_admin))
        await uow.flush()

        start = datetime.now(timezone.utc) - timedelta(minutes=5)
        messages_data = [
            ("alice", False, "hi everyone"),
            ("admin", True, "Welcome to the lobby. Be nice."),
            ("bob", False, "hey alice"),
        ]
        for offset, (name, is_admin, body) in enumerate(messages_data):
            await uow.messages_w.add(
                Message(
                    id=uuid.uuid4(),
                    display_name=name,
                    body=body,
                    is_admin=is_admin,
                    created_at=start + timedelta(seconds=offset),
                )
            )

        await uow.commit()
        logger.info("Seeded %d accounts and %d messages", len(ACCOUNTS), len(messages_data))

    if settings.JWT_VERIFY_MODE == "hs256" and settings.JWT_SECRET:
        for account_id, username, _ in ACCOUNTS:
            token = jwt.encode(
                {"sub": str(account_id)}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM,
            )
            logger.info("Token for %s: %s", username, token)

    await dispose_engine()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
