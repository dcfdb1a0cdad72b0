"""Fan-out worker: a bounded pool of queue consumers running the fan-out job."""
from __future__ import annotations

import asyncio
import functools
import logging
import signal
import uuid

import redis.asyncio as aioredis

from notify_service.config import settings
from notify_service.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from notify_service.infrastructure.db.session import dispose_engine
from notify_service.infrastructure.db.uow import uow_scope
from notify_service.infrastructure.queue.factory import build_job_queue
from notify_service.infrastructure.queue.redis_stream_queue import FanoutConsumerPool
from notify_service.services import fanout_service
from notify_service.services.relay_service import RelayService

logger = logging.getLogger(__name__)


def recipient_write_slots(write_concurrency: int, pool_capacity: int, consumers: int) -> int:
    """Process-wide cap on concurrent recipient writes.

    Each consumer may hold one more session outside its recipient writes
    (load, relay, mark processed), so those are kept out of the pool share.
    """
    available = pool_capacity - consumers
    if available < 1:
        raise ValueError(
            f"DB pool of {pool_capacity} cannot serve {consumers} fan-out consumers"
        )
    return max(1, min(write_concurrency, available))


async def run_fanout_worker() -> None:
    slots = recipient_write_slots(
        settings.RECIPIENT_WRITE_CONCURRENCY,
        settings.DB_POOL_SIZE + settings.DB_MAX_OVERFLOW,
        settings.WORKER_CONCURRENCY,
    )
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    queue = build_job_queue(redis)
    relay = RelayService(RedisPubSubPublisher(redis), settings.REDIS_PUBSUB_CHANNEL)

    handler = functools.partial(
        fanout_service.process_job,
        uow_factory=uow_scope,
        relay=relay,
        write_slots=asyncio.Semaphore(slots),
    )
    pool = FanoutConsumerPool(
        queue,
        handler,
        concurrency=settings.WORKER_CONCURRENCY,
        consumer_prefix=f"fanout-{uuid.uuid4().hex[:8]}",
        lease_ms=settings.FANOUT_LEASE_MS,
        block_ms=settings.FANOUT_BLOCK_MS,
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop.set)

    await pool.start()
    logger.info(
        "Fan-out worker started (concurrency=%d, write_slots=%d, max_attempts=%d, lease=%dms)",
        settings.WORKER_CONCURRENCY,
        slots,
        settings.FANOUT_MAX_ATTEMPTS,
        settings.FANOUT_LEASE_MS,
    )
    try:
        await stop.wait()
        logger.info("Shutting down fan-out worker")
    finally:
        # In-flight entries stay pending and are reclaimed after the lease.
        await pool.stop()
        await redis.aclose()
        await dispose_engine()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_fanout_worker())


if __name__ == "__main__":
    main()
