from __future__ import annotations

from lobby_chat.domain.entities.ban import BanRecord
from lobby_chat.domain.value_objects.enums import BanTargetKind
from lobby_chat.infrastructure.db.models.account import AccountModel
from lobby_chat.infrastructure.db.models.address_ban import AddressBanModel


def account_to_record(model: AccountModel) -> BanRecord | None:
    if not model.is_banned:
        return None
    return BanRecord(
        target_kind=BanTargetKind.ACCOUNT,
        target=str(model.id),
        reason=model.ban_reason or "",
        expires_at=model.banned_until,
    )


def address_to_record(model: AddressBanModel) -> BanRecord:
    return BanRecord(
        target_kind=BanTargetKind.ADDRESS,
        target=model.address,
        reason=model.reason,
        expires_at=model.expires_at,
    )
