from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from notify_service.api.middleware.correlation_id import CorrelationIdMiddleware
from notify_service.api.middleware.metrics import RequestTimingMiddleware
from notify_service.api.v1.routers import events, health, notifications, ws
from notify_service.application.exceptions import NotFoundError, ValidationError
from notify_service.application.ports.sessions import SessionRegistry
from notify_service.config import settings
from notify_service.infrastructure.bus.redis_pubsub import RedisPubSubSubscriber
from notify_service.infrastructure.bus.serializer import RelayMessage
from notify_service.infrastructure.db.session import dispose_engine
from notify_service.infrastructure.queue.factory import build_job_queue
from notify_service.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


def relay_dispatcher(registry: SessionRegistry):
    """Callback delivering relay messages to this process's live sessions."""

    async def _on_relay_message(message: RelayMessage) -> None:
        sent = await registry.emit(message.recipient_id, message.event, message.data)
        logger.debug(
            "Relay %s for %s reached %d sessions",
            message.event, message.recipient_id, sent,
        )

    return _on_relay_message


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    app.state.job_queue = build_job_queue(app.state.redis)

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        relay_dispatcher(app.state.session_registry),
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber

    yield

    await subscriber.stop()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")
    await dispose_engine()


def create_app(registry: ConnectionManager | None = None) -> FastAPI:
    app = FastAPI(
        title="Notify Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.session_registry = registry or ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(events.router)
    app.include_router(notifications.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def _request_validation(_req: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})
