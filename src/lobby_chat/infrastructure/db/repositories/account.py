from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lobby_chat.application.dto.identity import Identity
from lobby_chat.domain.entities.ban import BanRecord
from lobby_chat.infrastructure.db.mappers import ban as ban_mapper
from lobby_chat.infrastructure.db.models.account import AccountModel


class AccountReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_identity(self, account_id: int) -> Identity | None:
        stmt = select(AccountModel.id, AccountModel.username, AccountModel.is_admin).where(
            AccountModel.id == account_id
        )
        result = await self._session.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return Identity(account_id=row.id, display_name=row.username, is_admin=row.is_admin)

    async def get_ban(self, account_id: int) -> BanRecord | None:
        model = await self._session.get(AccountModel, account_id)
        return ban_mapper.account_to_record(model) if model else None


class AccountWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def set_ban(
        self,
        account_id: int,
        reason: str,
        expires_at: datetime | None,
    ) -> bool:
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .values(is_banned=True, ban_reason=reason, banned_until=expires_at)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0
