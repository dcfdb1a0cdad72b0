from __future__ import annotations

import logging
import uuid
from typing import Any, Mapping

from notify_service.application.dto.events import (
    Accepted,
    AlreadyProcessed,
    IngestResult,
    Rejected,
    parse_domain_event,
)
from notify_service.application.dto.jobs import FanoutJob
from notify_service.application.exceptions import ValidationError
from notify_service.application.ports.clock import Clock, SystemClock, epoch_ms
from notify_service.application.ports.queue import JobQueue
from notify_service.application.uow import UnitOfWork
from notify_service.domain.entities.outbox_record import OutboxRecord
from notify_service.domain.events.domain_event import DomainEvent, event_to_payload
from notify_service.domain.value_objects.enums import OutboxStatus

logger = logging.getLogger(__name__)


def build_dedupe_key(event: DomainEvent, token: str) -> str:
    return f"{event.type.value}:{event.actor_id}:{event.entity_id}:{token}"


async def submit(
    data: Mapping[str, Any],
    uow: UnitOfWork,
    queue: JobQueue,
    *,
    clock: Clock | None = None,
    idempotency_key: str | None = None,
) -> IngestResult:
    """Validate an event, store it in the outbox and queue its fan-out.

    Without ``idempotency_key`` the submission time (ms) stands in for it, so
    only a byte-identical submission in the same millisecond is collapsed.
    """
    clock = clock or SystemClock()
    try:
        event = parse_domain_event(data)
    except ValidationError as exc:
        logger.info("Rejected event: %s", exc.detail)
        return Rejected(exc.detail)

    now = clock.now()
    token = idempotency_key.strip() if idempotency_key else ""
    if not token:
        token = str(epoch_ms(now))

    record = OutboxRecord(
        id=uuid.uuid4(),
        event_type=event.type.value,
        payload=event_to_payload(event),
        dedupe_key=build_dedupe_key(event, token),
        status=OutboxStatus.PENDING,
        created_at=now,
    )
    record, created = await uow.outbox.add_if_not_exists(record)
    if not created:
        logger.info("Duplicate submission absorbed: %s", record.dedupe_key)
        return AlreadyProcessed(record.id)
    await uow.commit()

    try:
        await queue.enqueue(FanoutJob(record.id))
    except Exception:
        # The record is durable; the outbox sweep re-enqueues it.
        logger.warning(
            "Enqueue failed for outbox record %s, left for sweep", record.id,
            exc_info=True,
        )
    return Accepted(record.id)
