from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lobby_chat.domain.entities.ban import BanRecord
from lobby_chat.infrastructure.db.mappers import ban as mapper
from lobby_chat.infrastructure.db.models.address_ban import AddressBanModel


class AddressBanReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, address: str) -> BanRecord | None:
        stmt = select(AddressBanModel).where(AddressBanModel.address == address)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.address_to_record(model) if model else None


class AddressBanWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, record: BanRecord) -> None:
        """Insert a ban, replacing reason and expiry if the address is already listed."""
        stmt = pg_insert(AddressBanModel).values(
            address=record.target,
            reason=record.reason,
            expires_at=record.expires_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[AddressBanModel.address],
            set_={
                "reason": stmt.excluded.reason,
                "expires_at": stmt.excluded.expires_at,
                "banned_at": stmt.excluded.banned_at,
            },
        )
        await self._session.execute(stmt)
