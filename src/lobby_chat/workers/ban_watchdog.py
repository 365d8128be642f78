"""Ban enforcement: evicts live sessions whose account or address is banned."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from lobby_chat.application.dto.bans import BanStatus, ForcedDisconnect
from lobby_chat.application.ports.bans import BanDirectory
from lobby_chat.application.ports.clock import Clock, SystemClock
from lobby_chat.domain.entities.session import Session
from lobby_chat.domain.value_objects.enums import BanTargetKind
from lobby_chat.infrastructure.bus.serializer import parse_datetime
from lobby_chat.infrastructure.ws.registry import SessionRegistry

logger = logging.getLogger(__name__)


class BanWatchdog:
    """Reconciles live sessions against the ban directory.

    Two triggers: a periodic sweep over every session, and `notify`, called
    by the admin ban handler right after a ban is recorded. Implements
    application.ports.bans.AdminBanAction.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        bans: BanDirectory,
        *,
        interval: float = 5.0,
        clock: Clock | None = None,
    ) -> None:
        self._registry = registry
        self._bans = bans
        self._interval = interval
        self._clock = clock or SystemClock()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="ban-watchdog")
        logger.info("Ban watchdog started (interval=%.1fs)", self._interval)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Ban watchdog stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Ban sweep failed")

    async def sweep(self) -> list[Session]:
        """Query the directory for every live session and evict the banned ones.

        Lookups run outside the registry lock. A session whose lookup fails
        is kept until the next sweep.
        """
        sessions = await self._registry.sessions()
        if not sessions:
            return []

        by_address: dict[str, BanStatus] = {}
        notices: dict[str, ForcedDisconnect] = {}
        for session in sessions:
            try:
                status = await self._bans.is_account_banned(session.account_id)
                if not status.active:
                    address = session.origin_address
                    if address not in by_address:
                        by_address[address] = await self._bans.is_address_banned(address)
                    status = by_address[address]
            except Exception:
                logger.exception("Ban lookup failed for account %s", session.account_id)
                continue
            if status.active:
                notices[session.connection_id] = ForcedDisconnect.banned(status)

        if not notices:
            return []
        evicted = await self._registry.evict(notices)
        if evicted:
            logger.info("Ban sweep evicted %d of %d sessions", len(evicted), len(sessions))
        return evicted

    async def notify(
        self,
        target_kind: BanTargetKind | str,
        target: str,
        reason: str,
        expires_at: datetime | None,
    ) -> int:
        """Evict sessions hit by a ban that was just recorded. Returns the count."""
        kind = BanTargetKind(target_kind)
        if expires_at is not None and expires_at <= self._clock.now():
            logger.info("Ignoring expired %s ban on %s", kind, target)
            return 0

        status = BanStatus(active=True, reason=reason, expires_at=expires_at)
        if kind == BanTargetKind.ACCOUNT:
            def matches(session: Session) -> bool:
                return str(session.account_id) == str(target)
        else:
            def matches(session: Session) -> bool:
                return session.origin_address == target

        evicted = await self._registry.evict_matching(matches, ForcedDisconnect.banned(status))
        logger.info("%s ban on %s evicted %d sessions", kind, target, len(evicted))
        return len(evicted)


BAN_CREATED = "ban.created"


async def handle_ban_event(
    watchdog: BanWatchdog,
    event_type: str,
    data: dict[str, Any],
) -> None:
    """Dispatch a ban published by another process to the watchdog."""
    if event_type != BAN_CREATED:
        logger.debug("Ignoring unknown ban channel event: %s", event_type)
        return
    try:
        target_kind = BanTargetKind(data["target_kind"])
        target = str(data["target"])
        expires_at = parse_datetime(data.get("expires_at"))
    except (KeyError, ValueError):
        logger.warning("Malformed %s event: %r", BAN_CREATED, data)
        return
    await watchdog.notify(target_kind, target, data.get("reason") or "", expires_at)
