from __future__ import annotations

from types import TracebackType
from typing import Any, Callable, Protocol, Self

from lobby_chat.application.repositories.account import AccountReader, AccountWriter
from lobby_chat.application.repositories.ban import AddressBanReader, AddressBanWriter
from lobby_chat.application.repositories.message import MessageReader, MessageWriter


class UnitOfWork(Protocol):
    accounts: AccountReader
    accounts_w: AccountWriter
    address_bans: AddressBanReader
    address_bans_w: AddressBanWriter
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...


# Builds a unit of work around an open database session.
UoWFactory = Callable[[Any], UnitOfWork]
