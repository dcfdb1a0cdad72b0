"""Worker side of live delivery: publish fresh notifications to the edge."""
from __future__ import annotations

import logging
from typing import Any, Sequence
from uuid import UUID

from notify_service.application.ports.bus import RelayPublisher
from notify_service.application.uow import UnitOfWork
from notify_service.domain.entities.notification import Notification
from notify_service.domain.value_objects.enums import DeliveryStatus

logger = logging.getLogger(__name__)

NOTIFICATION_NEW = "notification:new"


def serialize_notification(n: Notification) -> dict[str, Any]:
    """Push form of a notification; delivery status is left to the pull channel."""
    return {
        "id": str(n.id),
        "recipientUserId": n.recipient_user_id,
        "type": n.type,
        "actorId": n.actor_id,
        "sourceEntityId": n.source_entity_id,
        "sourceEntityKind": n.source_entity_kind,
        "message": n.message,
        "isRead": n.is_read,
        "createdAt": n.created_at.isoformat(),
    }


class RelayService:
    """Best-effort push. Pull reads stay authoritative whatever happens here."""

    def __init__(self, publisher: RelayPublisher, channel: str) -> None:
        self._publisher = publisher
        self._channel = channel

    async def emit_batch(
        self,
        notifications: Sequence[Notification],
        uow: UnitOfWork,
    ) -> tuple[list[UUID], list[UUID]]:
        """Publish each notification and record EMITTED / FAILED.

        Returns (emitted_ids, failed_ids).
        """
        emitted: list[UUID] = []
        failed: list[UUID] = []
        for n in notifications:
            payload = {
                "event_type": NOTIFICATION_NEW,
                "recipient_id": n.recipient_user_id,
                "notification": serialize_notification(n),
            }
            try:
                await self._publisher.publish(self._channel, payload)
                emitted.append(n.id)
            except Exception:
                logger.exception(
                    "Relay publish failed for notification %s (recipient %s)",
                    n.id, n.recipient_user_id,
                )
                failed.append(n.id)

        if emitted:
            await uow.notifications_w.set_delivery_status(emitted, DeliveryStatus.EMITTED)
        if failed:
            await uow.notifications_w.set_delivery_status(failed, DeliveryStatus.FAILED)
        await uow.commit()
        return emitted, failed
