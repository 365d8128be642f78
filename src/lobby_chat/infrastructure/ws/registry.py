"""Authoritative in-process registry of admitted WebSocket sessions."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TypeVar

from lobby_chat.application.dto.bans import ForcedDisconnect
from lobby_chat.application.dto.identity import Identity
from lobby_chat.application.exceptions import ValidationError
from lobby_chat.application.ports.clock import Clock, SystemClock
from lobby_chat.domain.entities.session import PresenceEntry, Session
from lobby_chat.domain.value_objects.enums import DisconnectReason, SessionState
from lobby_chat.infrastructure.ws.connection import Connection
from lobby_chat.infrastructure.ws.protocol import CloseCode, ServerEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

MembershipListener = Callable[[Sequence[Session]], None]

_CLOSE_CODES = {
    DisconnectReason.BANNED: CloseCode.BANNED,
    DisconnectReason.SUPERSEDED: CloseCode.SUPERSEDED,
}


class SessionRegistry:
    """Tracks at most one session per account and exactly one per connection.

    Every mutation and every enumeration runs under a single asyncio.Lock.
    Nothing inside the lock awaits network I/O: delivery only enqueues onto
    the connections' outbound queues. Membership listeners are called inside
    the lock right after each change, so they see the same order of events
    as every broadcast.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._lock = asyncio.Lock()
        self._clock = clock or SystemClock()
        self._sessions: dict[str, Session] = {}
        self._by_account: dict[int, str] = {}
        self._listeners: list[MembershipListener] = []

    def __len__(self) -> int:
        return len(self._sessions)

    def add_listener(self, listener: MembershipListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def get(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    async def admit(
        self,
        identity: Identity,
        connection: Connection,
        origin_address: str,
    ) -> Session:
        """Register a verified connection, superseding any session of the same account."""
        async with self._lock:
            if connection.id in self._sessions:
                raise ValidationError("Connection already admitted")

            previous_id = self._by_account.get(identity.account_id)
            if previous_id is not None:
                self._discard_locked(
                    previous_id,
                    SessionState.SUPERSEDED,
                    ForcedDisconnect.superseded(),
                )
                logger.info(
                    "Account %s superseded on %s by %s",
                    identity.account_id,
                    previous_id,
                    connection.id,
                )

            session = Session(
                account_id=identity.account_id,
                display_name=identity.display_name,
                is_admin=identity.is_admin,
                connection=connection,
                origin_address=origin_address,
                joined_at=self._clock.now(),
            )
            self._sessions[connection.id] = session
            self._by_account[identity.account_id] = connection.id
            connection.state = SessionState.ADMITTED
            self._changed_locked()
            online = len(self._sessions)

        logger.info(
            "Admitted %s (account=%s, addr=%s, online=%d)",
            identity.display_name,
            identity.account_id,
            origin_address,
            online,
        )
        return session

    async def remove(self, connection_id: str) -> Session | None:
        """Drop a session after its peer went away. Unknown ids are a no-op."""
        async with self._lock:
            return self._discard_locked(connection_id, SessionState.DISCONNECTED)

    async def evict(self, notices: Mapping[str, ForcedDisconnect]) -> list[Session]:
        """Remove and close each listed session that is still registered."""
        evicted: list[Session] = []
        async with self._lock:
            for connection_id, notice in notices.items():
                session = self._discard_locked(connection_id, SessionState.EVICTED, notice)
                if session is not None:
                    evicted.append(session)
        self._log_evicted(evicted)
        return evicted

    async def evict_matching(
        self,
        predicate: Callable[[Session], bool],
        notice: ForcedDisconnect,
    ) -> list[Session]:
        """Select and evict in one critical section. `predicate` must not do I/O."""
        evicted: list[Session] = []
        async with self._lock:
            targets = [s.connection_id for s in self._sessions.values() if predicate(s)]
            for connection_id in targets:
                session = self._discard_locked(connection_id, SessionState.EVICTED, notice)
                if session is not None:
                    evicted.append(session)
        self._log_evicted(evicted)
        return evicted

    def _log_evicted(self, evicted: list[Session]) -> None:
        for session in evicted:
            logger.info(
                "Evicted %s (account=%s, addr=%s)",
                session.display_name,
                session.account_id,
                session.origin_address,
            )

    async def snapshot(self) -> list[PresenceEntry]:
        async with self._lock:
            return [s.presence_entry() for s in self._sessions.values()]

    async def sessions(self) -> list[Session]:
        """Point-in-time copy, for callers that must do I/O outside the lock."""
        async with self._lock:
            return list(self._sessions.values())

    async def visit(self, fn: Callable[[Sequence[Session]], T]) -> T:
        """Run `fn` over the current sessions with the registry locked."""
        async with self._lock:
            return fn(tuple(self._sessions.values()))

    async def for_each(self, fn: Callable[[Session], bool | None]) -> int:
        """Apply `fn` to every live session.

        Sessions for which `fn` returns True are removed once the
        enumeration is over. Returns the number of sessions visited.
        """
        async with self._lock:
            current = tuple(self._sessions.values())
            stale = [s for s in current if fn(s)]
            for session in stale:
                self._discard_locked(session.connection_id, SessionState.DISCONNECTED)
        return len(current)

    async def close_all(self, code: int = CloseCode.GOING_AWAY) -> int:
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._by_account.clear()
            for session in sessions:
                session.connection.close(code, "server shutdown")
        logger.info("Closed %d sessions on shutdown", len(sessions))
        return len(sessions)

    def _discard_locked(
        self,
        connection_id: str,
        state: SessionState,
        notice: ForcedDisconnect | None = None,
    ) -> Session | None:
        session = self._sessions.pop(connection_id, None)
        if session is None:
            return None
        if self._by_account.get(session.account_id) == connection_id:
            del self._by_account[session.account_id]

        connection = session.connection
        if notice is not None:
            connection.close(
                _CLOSE_CODES[notice.reason],
                notice.reason.value,
                state=state,
                notice=(ServerEvent.FORCED_DISCONNECT, notice.to_payload()),
            )
        else:
            connection.state = state

        self._changed_locked()
        return session

    def _changed_locked(self) -> None:
        sessions = tuple(self._sessions.values())
        for listener in self._listeners:
            try:
                listener(sessions)
            except Exception:
                logger.exception("Membership listener failed")
