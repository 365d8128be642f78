from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lobby_chat.application.dto.bans import BanStatus


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ValidationError(AppError):
    pass


class InvalidCredentialError(AppError):
    """Credential could not be verified or its account does not exist."""


class AlreadyBannedError(AppError):
    """Join refused because the account or origin address is banned."""

    def __init__(self, status: BanStatus) -> None:
        self.status = status
        super().__init__(status.reason or "banned")


class EmptyMessageError(ValidationError):
    pass


class MessageTooLongError(ValidationError):
    pass
