from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lobby_chat.api.deps import build_verifier
from lobby_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from lobby_chat.api.v1.routers import admin_bans, health, ws
from lobby_chat.application.exceptions import (
    ForbiddenError,
    InvalidCredentialError,
    NotFoundError,
    ValidationError,
)
from lobby_chat.application.ports.bans import BanWriter
from lobby_chat.application.ports.clock import SystemClock
from lobby_chat.config import settings
from lobby_chat.infrastructure.auth.identity_provider import AccountIdentityProvider
from lobby_chat.infrastructure.bus.redis_pubsub import RedisPubSubSubscriber
from lobby_chat.infrastructure.db.session import AsyncSessionLocal, dispose_engine
from lobby_chat.infrastructure.db.stores import SqlBanDirectory, SqlMessageStore
from lobby_chat.infrastructure.ws.registry import SessionRegistry
from lobby_chat.services import presence_service
from lobby_chat.services.session_service import ChatContext
from lobby_chat.workers.ban_watchdog import BanWatchdog, handle_ban_event

logger = logging.getLogger(__name__)


def build_context() -> tuple[ChatContext, BanWriter]:
    """Wire the SQL-backed collaborators from settings."""
    clock = SystemClock()
    bans = SqlBanDirectory(AsyncSessionLocal, clock)
    context = ChatContext(
        registry=SessionRegistry(clock),
        identities=AccountIdentityProvider(build_verifier(), AsyncSessionLocal),
        bans=bans,
        store=SqlMessageStore(AsyncSessionLocal),
        clock=clock,
        history_limit=settings.HISTORY_REPLAY_LIMIT,
        max_message_length=settings.MESSAGE_MAX_LENGTH,
    )
    return context, bans


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    watchdog: BanWatchdog = app.state.watchdog
    await watchdog.start()

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_BANS_CHANNEL,
        partial(handle_ban_event, watchdog),
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber

    yield

    await subscriber.stop()
    await watchdog.stop()
    await app.state.chat.registry.close_all()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")
    await dispose_engine()


def create_app(
    context: ChatContext | None = None,
    ban_writer: BanWriter | None = None,
) -> FastAPI:
    app = FastAPI(
        title="Lobby Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    if context is None:
        context, default_writer = build_context()
        ban_writer = ban_writer or default_writer
    assert ban_writer is not None, "ban_writer is required with a custom context"

    presence_service.attach(context.registry)
    app.state.chat = context
    app.state.ban_writer = ban_writer
    app.state.watchdog = BanWatchdog(
        context.registry,
        context.bans,
        interval=settings.BAN_SWEEP_INTERVAL_SECONDS,
        clock=context.clock,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(admin_bans.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(InvalidCredentialError)
    async def _unauthorized(_req: Request, exc: InvalidCredentialError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})
