"""Fan-out job queue on Redis Streams.

* ``enqueue`` is guarded by a ``SET NX`` marker per job id, so queueing the
  same id twice is a no-op until the job reaches a terminal outcome.
* Consumers read through a consumer group; an entry stays owned by its
  consumer (the lease) until acked. Entries idle longer than the lease are
  reclaimed with ``XAUTOCLAIM`` and run again.
* Failures are acked and rescheduled as ``attempt + 1`` in a sorted set keyed
  by due time; the promoter moves due jobs back onto the stream.
* After ``max_attempts`` the job goes to the dead-letter stream (trimmed to
  ``dead_letter_maxlen``). Its outbox record stays PENDING for the
  reconciliation sweep.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import redis.asyncio as aioredis

from notify_service.application.dto.jobs import FanoutJob
from notify_service.application.exceptions import FatalProcessingError

logger = logging.getLogger(__name__)


def calc_backoff_ms(attempt: int, base_ms: int, max_ms: int) -> int:
    """Delay before ``attempt + 1``: base, 2*base, 4*base... capped."""
    return min(base_ms * (2 ** max(attempt - 1, 0)), max_ms)


@dataclass(frozen=True, slots=True)
class Delivery:
    entry_id: str
    job: FanoutJob
    reclaimed: bool = False


class RedisStreamJobQueue:
    """Implements application.ports.queue.JobQueue."""

    def __init__(
        self,
        redis: aioredis.Redis,
        stream: str,
        group: str,
        *,
        delayed_key: str,
        dead_letter_stream: str,
        job_key_prefix: str,
        job_id_ttl_seconds: int = 3600,
        max_attempts: int = 3,
        backoff_base_ms: int = 2000,
        backoff_max_ms: int = 60_000,
        dead_letter_maxlen: int | None = 10_000,
    ) -> None:
        self._redis = redis
        self._stream = stream
        self._group = group
        self._delayed_key = delayed_key
        self._dead_letter_stream = dead_letter_stream
        self._job_key_prefix = job_key_prefix
        self._job_id_ttl = job_id_ttl_seconds
        self.max_attempts = max_attempts
        self._backoff_base_ms = backoff_base_ms
        self._backoff_max_ms = backoff_max_ms
        self._dead_letter_maxlen = dead_letter_maxlen

    def _job_key(self, job_id: str) -> str:
        return f"{self._job_key_prefix}{job_id}"

    async def ensure_group(self) -> None:
        try:
            await self._redis.xgroup_create(
                self._stream, self._group, id="0", mkstream=True
            )
            logger.info("Created consumer group %s on %s", self._group, self._stream)
        except aioredis.ResponseError as e:
            if "BUSYGROUP" in str(e):
                logger.debug("Consumer group %s already exists", self._group)
            else:
                raise

    async def enqueue(self, job: FanoutJob) -> bool:
        key = self._job_key(job.job_id)
        if not await self._redis.set(key, "1", nx=True, ex=self._job_id_ttl):
            logger.debug("Job %s already queued, skipping", job.job_id)
            return False
        try:
            await self._redis.xadd(self._stream, job.to_fields())
        except Exception:
            await self._redis.delete(key)
            raise
        return True

    def _to_deliveries(
        self, messages: list[Any], *, reclaimed: bool
    ) -> list[Delivery]:
        deliveries: list[Delivery] = []
        for msg_id, fields in messages:
            if not fields:
                # Entry deleted while pending.
                continue
            try:
                job = FanoutJob.from_fields(fields)
            except (KeyError, ValueError):
                logger.error("Malformed fan-out entry %s: %r, dropping", msg_id, fields)
                continue
            deliveries.append(Delivery(msg_id, job, reclaimed=reclaimed))
        return deliveries

    async def read(self, consumer: str, *, count: int = 1, block_ms: int = 5000) -> list[Delivery]:
        entries = await self._redis.xreadgroup(
            groupname=self._group,
            consumername=consumer,
            streams={self._stream: ">"},
            count=count,
            block=block_ms,
        )
        deliveries: list[Delivery] = []
        for _stream_name, messages in entries or []:
            deliveries.extend(self._to_deliveries(messages, reclaimed=False))
        return deliveries

    async def reclaim(self, consumer: str, *, min_idle_ms: int, count: int = 1) -> list[Delivery]:
        """Take over entries whose lease expired (their consumer died or hung)."""
        result = await self._redis.xautoclaim(
            self._stream,
            self._group,
            consumer,
            min_idle_time=min_idle_ms,
            start_id="0-0",
            count=count,
        )
        messages = result[1] if result and len(result) > 1 else []
        return self._to_deliveries(messages, reclaimed=True)

    async def _ack(self, delivery: Delivery) -> None:
        await self._redis.xack(self._stream, self._group, delivery.entry_id)
        await self._redis.xdel(self._stream, delivery.entry_id)

    async def complete(self, delivery: Delivery) -> None:
        await self._ack(delivery)
        await self._redis.delete(self._job_key(delivery.job.job_id))

    async def retry_later(self, delivery: Delivery) -> bool:
        """Schedule the next attempt. Returns False when attempts are exhausted."""
        job = delivery.job
        if job.attempt >= self.max_attempts:
            await self.dead_letter(delivery, "retries exhausted")
            return False
        delay_ms = calc_backoff_ms(job.attempt, self._backoff_base_ms, self._backoff_max_ms)
        due_ms = int(time.time() * 1000) + delay_ms
        await self._redis.zadd(
            self._delayed_key, {json.dumps(job.next_attempt().to_fields()): due_ms}
        )
        await self.complete(delivery)
        logger.info(
            "Job %s rescheduled as attempt %d in %dms",
            job.job_id, job.attempt + 1, delay_ms,
        )
        return True

    async def dead_letter(self, delivery: Delivery, reason: str) -> None:
        await self._redis.xadd(
            self._dead_letter_stream,
            {**delivery.job.to_fields(), "job_id": delivery.job.job_id, "reason": reason},
            maxlen=self._dead_letter_maxlen,
            approximate=True,
        )
        await self.complete(delivery)

    async def promote_due(self, *, limit: int = 100) -> int:
        """Move due retries back onto the stream. Returns how many were queued."""
        now_ms = int(time.time() * 1000)
        due = await self._redis.zrangebyscore(
            self._delayed_key, "-inf", now_ms, start=0, num=limit
        )
        promoted = 0
        for raw in due:
            # Whoever removes the member owns the promotion.
            if not await self._redis.zrem(self._delayed_key, raw):
                continue
            job = FanoutJob.from_fields(json.loads(raw))
            if await self.enqueue(job):
                promoted += 1
        return promoted


JobHandler = Callable[[FanoutJob], Awaitable[Any]]


class FanoutConsumerPool:
    """Fixed number of consumer tasks, each holding at most one job at a time."""

    def __init__(
        self,
        queue: RedisStreamJobQueue,
        handler: JobHandler,
        *,
        concurrency: int = 5,
        consumer_prefix: str = "worker",
        lease_ms: int = 60_000,
        block_ms: int = 5000,
        promote_interval: float = 1.0,
    ) -> None:
        self._queue = queue
        self._handler = handler
        self._concurrency = concurrency
        self._consumer_prefix = consumer_prefix
        self._lease_ms = lease_ms
        self._block_ms = block_ms
        self._promote_interval = promote_interval
        self._tasks: list[asyncio.Task[None]] = []

    async def start(self) -> None:
        await self._queue.ensure_group()
        for i in range(self._concurrency):
            name = f"{self._consumer_prefix}-{i}"
            self._tasks.append(asyncio.create_task(self._consume(name), name=name))
        self._tasks.append(
            asyncio.create_task(self._promote(), name=f"{self._consumer_prefix}-promoter")
        )
        logger.info(
            "Fan-out pool started: %d consumers (%s)", self._concurrency, self._consumer_prefix,
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Fan-out pool stopped")

    async def _consume(self, consumer: str) -> None:
        while True:
            try:
                deliveries = await self._queue.reclaim(consumer, min_idle_ms=self._lease_ms)
                if not deliveries:
                    deliveries = await self._queue.read(consumer, block_ms=self._block_ms)
                for delivery in deliveries:
                    await self.run_one(delivery)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Consumer %s error, retrying in 5s", consumer)
                await asyncio.sleep(5)

    async def _promote(self) -> None:
        while True:
            try:
                promoted = await self._queue.promote_due()
                if promoted:
                    logger.debug("Promoted %d delayed jobs", promoted)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Delayed job promoter error")
            await asyncio.sleep(self._promote_interval)

    async def run_one(self, delivery: Delivery) -> str:
        """Run the handler and settle the entry. Returns the outcome name."""
        job = delivery.job
        if delivery.reclaimed:
            logger.warning("Job %s stalled, lease expired; running again", job.job_id)
        try:
            await self._handler(job)
        except FatalProcessingError as exc:
            logger.error("Dropping job %s: %s", job.job_id, exc.detail)
            await self._queue.complete(delivery)
            return "dropped"
        except Exception:
            logger.exception("Job %s failed (attempt %d)", job.job_id, job.attempt)
            if await self._queue.retry_later(delivery):
                return "retrying"
            logger.error(
                "Job %s exhausted %d attempts; outbox record %s left for sweep",
                job.job_id, self._queue.max_attempts, job.outbox_record_id,
            )
            return "exhausted"
        await self._queue.complete(delivery)
        logger.info("Job %s completed", job.job_id)
        return "completed"
