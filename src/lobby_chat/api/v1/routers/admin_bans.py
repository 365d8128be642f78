from __future__ import annotations

import logging

from fastapi import APIRouter

from lobby_chat.api.deps import BanWriterDep, ChatContextDep, CurrentAdmin, WatchdogDep
from lobby_chat.api.v1.schemas.admin import AccountBanRequest, AddressBanRequest, BanResponse
from lobby_chat.api.v1.schemas.presence import PresenceResponse, PresenceUser
from lobby_chat.application.ports.clock import expiry_after
from lobby_chat.domain.entities.ban import BanRecord
from lobby_chat.workers.ban_watchdog import BanWatchdog

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/chat/admin", tags=["admin"])


async def _enforce(record: BanRecord, watchdog: BanWatchdog) -> BanResponse:
    evicted = await watchdog.notify(
        record.target_kind, record.target, record.reason, record.expires_at,
    )
    return BanResponse(
        target_kind=record.target_kind,
        target=record.target,
        reason=record.reason,
        expires_at=record.expires_at,
        evicted_sessions=evicted,
    )


@router.post("/bans/accounts", response_model=BanResponse, status_code=201)
async def ban_account(
    body: AccountBanRequest,
    admin: CurrentAdmin,
    ctx: ChatContextDep,
    bans: BanWriterDep,
    watchdog: WatchdogDep,
) -> BanResponse:
    expires_at = expiry_after(ctx.clock, body.duration_minutes)
    record = await bans.ban_account(body.account_id, body.reason, expires_at)
    logger.info("Admin %s banned account %s", admin.account_id, body.account_id)
    return await _enforce(record, watchdog)


@router.post("/bans/addresses", response_model=BanResponse, status_code=201)
async def ban_address(
    body: AddressBanRequest,
    admin: CurrentAdmin,
    ctx: ChatContextDep,
    bans: BanWriterDep,
    watchdog: WatchdogDep,
) -> BanResponse:
    expires_at = expiry_after(ctx.clock, body.duration_minutes)
    record = await bans.ban_address(body.address, body.reason, expires_at)
    logger.info("Admin %s banned address %s", admin.account_id, body.address)
    return await _enforce(record, watchdog)


@router.get("/online", response_model=PresenceResponse)
async def list_online(admin: CurrentAdmin, ctx: ChatContextDep) -> PresenceResponse:
    entries = await ctx.registry.snapshot()
    return PresenceResponse(
        online=len(entries),
        users=[PresenceUser.model_validate(e, from_attributes=True) for e in entries],
    )
