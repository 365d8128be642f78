"""Shared test fixtures."""
from __future__ import annotations

import json
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from lobby_chat.application.dto.bans import BanStatus
from lobby_chat.application.dto.identity import Identity
from lobby_chat.application.exceptions import InvalidCredentialError, NotFoundError
from lobby_chat.domain.entities.ban import BanRecord
from lobby_chat.domain.entities.message import Message
from lobby_chat.domain.value_objects.enums import BanTargetKind
from lobby_chat.infrastructure.ws.connection import Connection
from lobby_chat.infrastructure.ws.registry import SessionRegistry
from lobby_chat.services import presence_service
from lobby_chat.services.session_service import ChatContext

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@dataclass
class FixedClock:
    current: datetime = NOW

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@dataclass
class FakeTransport:
    """Records what the writer task hands to the socket."""

    frames: list[dict[str, Any]] = field(default_factory=list)
    close_code: int | None = None
    close_reason: str | None = None
    fail_sends: bool = False

    async def send_text(self, data: str) -> None:
        if self.fail_sends:
            raise RuntimeError("peer gone")
        self.frames.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.close_code = code
        self.close_reason = reason

    @property
    def closed(self) -> bool:
        return self.close_code is not None

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [f["data"] for f in self.frames if f["type"] == event_type]

    def types(self) -> list[str]:
        return [f["type"] for f in self.frames]


@dataclass
class FakeIdentityProvider:
    """Tokens are looked up verbatim; anything unknown is invalid."""

    tokens: dict[str, Identity] = field(default_factory=dict)

    def add(self, token: str, identity: Identity) -> None:
        self.tokens[token] = identity

    async def verify(self, credential: str) -> Identity:
        identity = self.tokens.get(credential)
        if identity is None:
            raise InvalidCredentialError("Unknown token")
        return identity


@dataclass
class FakeBanDirectory:
    clock: FixedClock = field(default_factory=FixedClock)
    accounts: dict[int, BanRecord] = field(default_factory=dict)
    addresses: dict[str, BanRecord] = field(default_factory=dict)
    known_accounts: set[int] | None = None
    fail_accounts: set[int] = field(default_factory=set)
    lookups: list[tuple[str, Any]] = field(default_factory=list)

    async def is_account_banned(self, account_id: int) -> BanStatus:
        self.lookups.append(("account", account_id))
        if account_id in self.fail_accounts:
            raise ConnectionError("ban directory unavailable")
        return BanStatus.from_record(self.accounts.get(account_id), self.clock.now())

    async def is_address_banned(self, address: str) -> BanStatus:
        self.lookups.append(("address", address))
        return BanStatus.from_record(self.addresses.get(address), self.clock.now())

    async def ban_account(
        self, account_id: int, reason: str, expires_at: datetime | None,
    ) -> BanRecord:
        if self.known_accounts is not None and account_id not in self.known_accounts:
            raise NotFoundError("Account not found")
        record = BanRecord(BanTargetKind.ACCOUNT, str(account_id), reason, expires_at)
        self.accounts[account_id] = record
        return record

    async def ban_address(
        self, address: str, reason: str, expires_at: datetime | None,
    ) -> BanRecord:
        record = BanRecord(BanTargetKind.ADDRESS, address, reason, expires_at)
        self.addresses[address] = record
        return record


@dataclass
class FakeMessageStore:
    messages: list[Message] = field(default_factory=list)
    fail_append: bool = False
    fail_read: bool = False

    async def append(self, message: Message) -> None:
        if self.fail_append:
            raise ConnectionError("store unavailable")
        self.messages.append(message)

    async def recent_messages(self, limit: int) -> list[Message]:
        if self.fail_read:
            raise ConnectionError("store unavailable")
        return self.messages[-limit:] if limit > 0 else []


def make_identity(account_id: int = 42, name: str | None = None, *, is_admin: bool = False) -> Identity:
    return Identity(account_id=account_id, display_name=name or f"user{account_id}", is_admin=is_admin)


def make_message(body: str = "hello", *, name: str = "alice", offset: int = 0) -> Message:
    return Message(
        id=uuid.uuid4(),
        display_name=name,
        body=body,
        is_admin=False,
        created_at=NOW + timedelta(seconds=offset),
    )


def make_connection(address: str = "10.0.0.1", *, queue_size: int = 256) -> tuple[Connection, FakeTransport]:
    """A started connection; must be called from a running event loop."""
    transport = FakeTransport()
    connection = Connection(transport, address, queue_size=queue_size)
    connection.start()
    return connection, transport


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def registry(clock: FixedClock) -> SessionRegistry:
    reg = SessionRegistry(clock)
    presence_service.attach(reg)
    return reg


@pytest.fixture
def identities() -> FakeIdentityProvider:
    provider = FakeIdentityProvider()
    provider.add("alice-token", make_identity(42, "alice"))
    provider.add("bob-token", make_identity(43, "bob"))
    provider.add("admin-token", make_identity(1, "admin", is_admin=True))
    return provider


@pytest.fixture
def bans(clock: FixedClock) -> FakeBanDirectory:
    return FakeBanDirectory(clock=clock)


@pytest.fixture
def store() -> FakeMessageStore:
    return FakeMessageStore()


@pytest.fixture
def ctx(
    registry: SessionRegistry,
    identities: FakeIdentityProvider,
    bans: FakeBanDirectory,
    store: FakeMessageStore,
    clock: FixedClock,
) -> ChatContext:
    return ChatContext(
        registry=registry,
        identities=identities,
        bans=bans,
        store=store,
        clock=clock,
        history_limit=50,
        max_message_length=200,
    )


@dataclass
class FakeAccountRepo:
    identities: dict[int, Identity] = field(default_factory=dict)
    bans: dict[int, BanRecord] = field(default_factory=dict)

    async def get_identity(self, account_id: int) -> Identity | None:
        return self.identities.get(account_id)

    async def get_ban(self, account_id: int) -> BanRecord | None:
        if account_id not in self.identities:
            return None
        return self.bans.get(account_id)

    async def set_ban(self, account_id: int, reason: str, expires_at: datetime | None) -> bool:
        if account_id not in self.identities:
            return False
        self.bans[account_id] = BanRecord(BanTargetKind.ACCOUNT, str(account_id), reason, expires_at)
        return True


@dataclass
class FakeAddressBanRepo:
    records: dict[str, BanRecord] = field(default_factory=dict)

    async def get(self, address: str) -> BanRecord | None:
        return self.records.get(address)

    async def upsert(self, record: BanRecord) -> None:
        self.records[record.target] = record


@dataclass
class FakeMessageRepo:
    messages: list[Message] = field(default_factory=list)

    async def list_recent(self, *, limit: int = 50) -> list[Message]:
        return sorted(self.messages, key=lambda m: m.created_at)[-limit:]

    async def add(self, message: Message) -> None:
        self.messages.append(message)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests; one instance is shared by every session."""

    accounts: FakeAccountRepo = field(default_factory=FakeAccountRepo)
    address_bans: FakeAddressBanRepo = field(default_factory=FakeAddressBanRepo)
    messages: FakeMessageRepo = field(default_factory=FakeMessageRepo)
    commits: int = 0
    rollbacks: int = 0

    @property
    def accounts_w(self) -> FakeAccountRepo:
        return self.accounts

    @property
    def address_bans_w(self) -> FakeAddressBanRepo:
        return self.address_bans

    @property
    def messages_w(self) -> FakeMessageRepo:
        return self.messages

    def __call__(self, _session: Any) -> FakeUoW:
        return self

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is not None:
            await self.rollback()


@asynccontextmanager
async def _null_session() -> AsyncIterator[None]:
    yield None


def fake_session_factory() -> Any:
    """Stands in for async_sessionmaker; pair it with a FakeUoW as the uow factory."""
    return _null_session()
