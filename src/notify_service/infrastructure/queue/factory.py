from __future__ import annotations

import redis.asyncio as aioredis

from notify_service.config import settings
from notify_service.infrastructure.queue.redis_stream_queue import RedisStreamJobQueue


def build_job_queue(redis: aioredis.Redis) -> RedisStreamJobQueue:
    return RedisStreamJobQueue(
        redis,
        settings.FANOUT_STREAM,
        settings.FANOUT_GROUP,
        delayed_key=settings.FANOUT_DELAYED_KEY,
        dead_letter_stream=settings.FANOUT_DEAD_LETTER_STREAM,
        job_key_prefix=settings.FANOUT_JOB_KEY_PREFIX,
        job_id_ttl_seconds=settings.FANOUT_JOB_ID_TTL_SECONDS,
        max_attempts=settings.FANOUT_MAX_ATTEMPTS,
        backoff_base_ms=settings.FANOUT_BACKOFF_BASE_MS,
        backoff_max_ms=settings.FANOUT_BACKOFF_MAX_MS,
        dead_letter_maxlen=settings.FANOUT_DEAD_LETTER_MAXLEN,
    )
