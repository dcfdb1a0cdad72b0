"""Fan-out of one outbox record into per-recipient notifications.

Every step is safe to re-run: a redelivered or retried job finds the record
already PROCESSED, or finds the notifications it already created and skips
them.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from notify_service.application.dto.events import parse_domain_event
from notify_service.application.dto.jobs import FanoutJob
from notify_service.application.exceptions import FatalProcessingError, ValidationError
from notify_service.application.ports.clock import Clock, SystemClock
from notify_service.application.uow import UoWFactory
from notify_service.domain.entities.notification import (
    Notification,
    notification_dedupe_key,
)
from notify_service.domain.entities.outbox_record import OutboxRecord
from notify_service.domain.events.domain_event import (
    Commented,
    DomainEvent,
    Followed,
    Liked,
    PostCreated,
)
from notify_service.domain.value_objects.enums import (
    DeliveryStatus,
    EntityKind,
    NotificationType,
)
from notify_service.services.recipient_resolver import resolve_recipients
from notify_service.services.relay_service import RelayService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FanoutResult:
    outbox_record_id: uuid.UUID
    already_processed: bool = False
    recipients: frozenset[str] = frozenset()
    created: list[Notification] = field(default_factory=list)


def describe(event: DomainEvent, actor_name: str) -> tuple[NotificationType, EntityKind, str]:
    """Notification type, source entity kind and message for an event."""
    match event:
        case PostCreated():
            return (
                NotificationType.NEW_POST_FROM_FOLLOWING,
                EntityKind.POST,
                f"{actor_name} created a new post",
            )
        case Followed():
            return (
                NotificationType.NEW_FOLLOWER,
                EntityKind.USER,
                f"{actor_name} started following you",
            )
        case Liked():
            return (
                NotificationType.NEW_LIKE_ON_YOUR_POST,
                EntityKind.POST,
                f"{actor_name} liked your post",
            )
        case Commented():
            return (
                NotificationType.NEW_COMMENT_ON_YOUR_POST,
                EntityKind.POST,
                f"{actor_name} commented on your post",
            )
    raise TypeError(f"Unsupported event: {event!r}")


def build_notification(
    record: OutboxRecord,
    event: DomainEvent,
    recipient_user_id: str,
    actor_name: str,
    now: datetime,
) -> Notification:
    ntype, kind, message = describe(event, actor_name)
    return Notification(
        id=uuid.uuid4(),
        recipient_user_id=recipient_user_id,
        type=ntype.value,
        actor_id=event.actor_id,
        source_entity_id=event.entity_id,
        source_entity_kind=kind.value,
        message=message,
        outbox_record_id=record.id,
        dedupe_key=notification_dedupe_key(record.id, recipient_user_id),
        created_at=now,
        is_read=False,
        delivery_status=DeliveryStatus.PENDING,
    )


async def process_job(
    job: FanoutJob,
    uow_factory: UoWFactory,
    relay: RelayService,
    *,
    clock: Clock | None = None,
    write_concurrency: int = 10,
    write_slots: asyncio.Semaphore | None = None,
) -> FanoutResult:
    """Run the fan-out state machine for one job.

    ``write_slots`` bounds recipient writes across every job sharing it (one
    per worker process); without it the bound is ``write_concurrency`` for
    this job alone.

    Raises ``FatalProcessingError`` when the outbox record does not exist.
    Any other exception means the job should be retried as a whole.
    """
    clock = clock or SystemClock()
    record_id = job.outbox_record_id

    async with uow_factory() as uow:
        record = await uow.outbox.get_by_id(record_id)
        if record is None:
            raise FatalProcessingError(f"Outbox record {record_id} not found")
        if record.is_processed:
            logger.info("Outbox record %s already processed, skipping", record_id)
            return FanoutResult(record_id, already_processed=True)

        try:
            event: DomainEvent | None = parse_domain_event(record.payload)
        except ValidationError as exc:
            logger.warning(
                "Outbox record %s has unusable payload (%s), nothing to fan out",
                record_id, exc.detail,
            )
            event = None

        followers: list[str] = []
        if isinstance(event, PostCreated):
            followers = await uow.directory.list_follower_ids(event.actor_id)
        recipients = resolve_recipients(event, followers)

        actor_name = ""
        if event is not None and recipients:
            actor_name = await uow.directory.get_display_name(event.actor_id) or event.actor_id

    logger.info(
        "Fan-out %s (job %s): %d recipients",
        record_id, job.job_id, len(recipients),
    )

    created: list[Notification] = []
    if event is not None and recipients:
        created = await _create_notifications(
            record, event, recipients, actor_name,
            uow_factory, clock.now(),
            write_slots if write_slots is not None
            else asyncio.Semaphore(max(1, write_concurrency)),
        )

    if created:
        async with uow_factory() as uow:
            emitted, failed = await relay.emit_batch(created, uow)
        logger.info(
            "Relayed %d notifications for %s (%d failed)",
            len(emitted), record_id, len(failed),
        )

    async with uow_factory() as uow:
        await uow.outbox.mark_processed(record_id, clock.now())
        await uow.commit()

    return FanoutResult(record_id, recipients=recipients, created=created)


async def _create_notifications(
    record: OutboxRecord,
    event: DomainEvent,
    recipients: frozenset[str],
    actor_name: str,
    uow_factory: UoWFactory,
    now: datetime,
    semaphore: asyncio.Semaphore,
) -> list[Notification]:
    """Create one notification per recipient; returns only the new ones."""
    async def _create_one(recipient_id: str) -> Notification | None:
        async with semaphore:
            async with uow_factory() as uow:
                notification, created = await uow.notifications_w.create_if_not_exists(
                    build_notification(record, event, recipient_id, actor_name, now),
                )
                if not created:
                    logger.debug(
                        "Recipient %s already notified for %s", recipient_id, record.id,
                    )
                    return None
                await uow.commit()
                return notification

    outcomes = await asyncio.gather(
        *(_create_one(r) for r in sorted(recipients)),
        return_exceptions=True,
    )
    errors = [o for o in outcomes if isinstance(o, BaseException)]
    if errors:
        # Every recipient was attempted; the retry only has the failed ones left.
        raise errors[0]
    return [o for o in outcomes if o is not None]
