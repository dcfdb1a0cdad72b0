"""Reconciliation sweep: re-enqueues outbox records stuck in PENDING.

Covers records whose enqueue failed after the insert, and records whose job
exhausted its retries.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import redis.asyncio as aioredis

from notify_service.application.dto.jobs import FanoutJob
from notify_service.application.ports.queue import JobQueue
from notify_service.application.uow import UnitOfWork
from notify_service.config import settings
from notify_service.infrastructure.db.session import AsyncSessionLocal, dispose_engine
from notify_service.infrastructure.db.uow import SqlAlchemyUoW
from notify_service.infrastructure.queue.factory import build_job_queue

logger = logging.getLogger(__name__)


async def sweep_once(
    uow: UnitOfWork,
    queue: JobQueue,
    *,
    min_age: timedelta,
    batch_size: int,
    now: datetime | None = None,
) -> int:
    """Re-enqueue pending records older than ``min_age``. Returns how many were queued."""
    now = now or datetime.now(timezone.utc)
    pending = await uow.outbox.list_pending(now - min_age, batch_size)
    if not pending:
        return 0

    queued = 0
    for record in pending:
        try:
            if await queue.enqueue(FanoutJob(record.id)):
                queued += 1
        except Exception:
            logger.exception("Failed to re-enqueue outbox record %s", record.id)
    logger.info("Sweep found %d pending records, re-enqueued %d", len(pending), queued)
    return queued


async def run_outbox_sweeper() -> None:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    queue = build_job_queue(redis)
    min_age = timedelta(seconds=settings.SWEEP_MIN_AGE_SECONDS)

    logger.info(
        "Outbox sweeper started (interval=%.1fs, min_age=%ds, batch=%d)",
        settings.SWEEP_INTERVAL_SECONDS,
        settings.SWEEP_MIN_AGE_SECONDS,
        settings.SWEEP_BATCH_SIZE,
    )

    try:
        while True:
            try:
                async with AsyncSessionLocal() as session:
                    await sweep_once(
                        SqlAlchemyUoW(session), queue,
                        min_age=min_age, batch_size=settings.SWEEP_BATCH_SIZE,
                    )
            except Exception:
                logger.exception("Outbox sweeper loop error")
            await asyncio.sleep(settings.SWEEP_INTERVAL_SECONDS)
    finally:
        await redis.aclose()
        await dispose_engine()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_outbox_sweeper())


if __name__ == "__main__":
    main()
