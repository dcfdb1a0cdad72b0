"""One-time script: create the fan-out stream and its consumer group."""
from __future__ import annotations

import asyncio
import logging

import redis.asyncio as aioredis

from notify_service.config import settings
from notify_service.infrastructure.queue.factory import build_job_queue

logger = logging.getLogger(__name__)


async def create_group() -> None:
    r = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        await build_job_queue(r).ensure_group()
        logger.info(
            "Consumer group '%s' ready on stream '%s'",
            settings.FANOUT_GROUP,
            settings.FANOUT_STREAM,
        )
    finally:
        await r.aclose()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(create_group())


if __name__ == "__main__":
    main()
