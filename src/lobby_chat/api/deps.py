"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lobby_chat.application.dto.identity import Identity
from lobby_chat.application.exceptions import InvalidCredentialError
from lobby_chat.application.ports.auth import TokenVerifier
from lobby_chat.application.ports.bans import BanWriter
from lobby_chat.config import settings
from lobby_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from lobby_chat.infrastructure.auth.jwks_verifier import JWKSVerifier
from lobby_chat.services.session_service import ChatContext
from lobby_chat.workers.ban_watchdog import BanWatchdog

_bearer_scheme = HTTPBearer()


def build_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


def get_chat_context(request: Request) -> ChatContext:
    return request.app.state.chat


def get_watchdog(request: Request) -> BanWatchdog:
    return request.app.state.watchdog


def get_ban_writer(request: Request) -> BanWriter:
    return request.app.state.ban_writer


ChatContextDep = Annotated[ChatContext, Depends(get_chat_context)]
WatchdogDep = Annotated[BanWatchdog, Depends(get_watchdog)]
BanWriterDep = Annotated[BanWriter, Depends(get_ban_writer)]


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    ctx: ChatContextDep,
) -> Identity:
    try:
        return await ctx.identities.verify(credentials.credentials)
    except InvalidCredentialError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
        ) from exc


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]


async def get_current_admin(identity: CurrentIdentity) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return identity


CurrentAdmin = Annotated[Identity, Depends(get_current_admin)]
