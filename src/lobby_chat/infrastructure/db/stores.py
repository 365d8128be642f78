"""SQL-backed implementations of the ban directory and message store ports."""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lobby_chat.application.dto.bans import BanStatus
from lobby_chat.application.exceptions import NotFoundError
from lobby_chat.application.ports.clock import Clock, SystemClock
from lobby_chat.domain.entities.ban import BanRecord
from lobby_chat.domain.entities.message import Message
from lobby_chat.domain.value_objects.enums import BanTargetKind
from lobby_chat.application.uow import UoWFactory
from lobby_chat.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)


class SqlBanDirectory:
    """Implements application.ports.bans.BanDirectory.

    Expired rows are left in place; they simply stop counting as active.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock | None = None,
        uow_factory: UoWFactory = SqlAlchemyUoW,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._uow = uow_factory

    async def is_account_banned(self, account_id: int) -> BanStatus:
        async with self._session_factory() as session:
            record = await self._uow(session).accounts.get_ban(account_id)
        return BanStatus.from_record(record, self._clock.now())

    async def is_address_banned(self, address: str) -> BanStatus:
        async with self._session_factory() as session:
            record = await self._uow(session).address_bans.get(address)
        return BanStatus.from_record(record, self._clock.now())

    async def ban_account(
        self,
        account_id: int,
        reason: str,
        expires_at: datetime | None,
    ) -> BanRecord:
        async with self._session_factory() as session:
            async with self._uow(session) as uow:
                if not await uow.accounts_w.set_ban(account_id, reason, expires_at):
                    raise NotFoundError("Account not found")
                await uow.commit()
        logger.info("Account %s banned until %s: %s", account_id, expires_at, reason)
        return BanRecord(
            target_kind=BanTargetKind.ACCOUNT,
            target=str(account_id),
            reason=reason,
            expires_at=expires_at,
        )

    async def ban_address(
        self,
        address: str,
        reason: str,
        expires_at: datetime | None,
    ) -> BanRecord:
        record = BanRecord(
            target_kind=BanTargetKind.ADDRESS,
            target=address,
            reason=reason,
            expires_at=expires_at,
        )
        async with self._session_factory() as session:
            async with self._uow(session) as uow:
                await uow.address_bans_w.upsert(record)
                await uow.commit()
        logger.info("Address %s banned until %s: %s", address, expires_at, reason)
        return record


class SqlMessageStore:
    """Implements application.ports.messages.MessageStore."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        uow_factory: UoWFactory = SqlAlchemyUoW,
    ) -> None:
        self._session_factory = session_factory
        self._uow = uow_factory

    async def append(self, message: Message) -> None:
        async with self._session_factory() as session:
            async with self._uow(session) as uow:
                await uow.messages_w.add(message)
                await uow.commit()

    async def recent_messages(self, limit: int) -> list[Message]:
        async with self._session_factory() as session:
            return await self._uow(session).messages.list_recent(limit=limit)
