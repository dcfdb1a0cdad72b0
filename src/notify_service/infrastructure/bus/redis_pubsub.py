"""Redis Pub/Sub relay channel: worker publishes, edge processes subscribe."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

from notify_service.infrastructure.bus.serializer import (
    RelayMessage,
    deserialize_relay_message,
    serialize_relay_message,
)

logger = logging.getLogger(__name__)


class RedisPubSubPublisher:
    """Implements application.ports.bus.RelayPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        data = dict(payload)
        event_type = data.pop("event_type", "unknown")
        recipient_id = data.pop("recipient_id")
        raw = serialize_relay_message(event_type, recipient_id, data)
        await self._redis.publish(channel, raw)


OnRelayMessage = Callable[[RelayMessage], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task that listens to the relay channel and dispatches messages."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnRelayMessage,
        *,
        reconnect_delay: float = 1.0,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._reconnect_delay = reconnect_delay
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-relay-subscriber")
        logger.info("Relay subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Relay subscriber ended with an error")
            self._task = None
            logger.info("Relay subscriber stopped")

    async def _listen(self) -> None:
        while True:
            try:
                await self._listen_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Relay subscriber lost channel=%s, resubscribing in %.1fs",
                    self._channel, self._reconnect_delay,
                )
            await asyncio.sleep(self._reconnect_delay)

    async def _listen_once(self) -> None:
        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(self._channel)
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    await self._callback(deserialize_relay_message(message["data"]))
                except Exception:
                    logger.exception("Error processing relay message")
        finally:
            try:
                await pubsub.unsubscribe(self._channel)
                await pubsub.aclose()
            except Exception:
                logger.debug("Relay pubsub cleanup failed", exc_info=True)
