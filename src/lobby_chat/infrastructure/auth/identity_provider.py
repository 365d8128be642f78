from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lobby_chat.application.dto.identity import Identity
from lobby_chat.application.exceptions import InvalidCredentialError
from lobby_chat.application.ports.auth import TokenVerifier
from lobby_chat.application.uow import UoWFactory
from lobby_chat.infrastructure.db.uow import SqlAlchemyUoW


class AccountIdentityProvider:
    """Implements application.ports.auth.IdentityProvider.

    The token only names the account; display name and admin flag are read
    from the accounts table so they reflect the current profile.
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        session_factory: async_sessionmaker[AsyncSession],
        uow_factory: UoWFactory = SqlAlchemyUoW,
    ) -> None:
        self._verifier = verifier
        self._session_factory = session_factory
        self._uow = uow_factory

    async def verify(self, credential: str) -> Identity:
        if not credential:
            raise InvalidCredentialError("Missing credential")
        account_id = await self._verifier.verify(credential)
        async with self._session_factory() as session:
            identity = await self._uow(session).accounts.get_identity(account_id)
        if identity is None:
            raise InvalidCredentialError("Unknown account")
        return identity
