from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from notify_service.domain.value_objects.enums import DeliveryStatus


def notification_dedupe_key(outbox_record_id: UUID, recipient_user_id: str) -> str:
    return f"{outbox_record_id}:{recipient_user_id}"


@dataclass(frozen=True, slots=True)
class Notification:
    id: UUID
    recipient_user_id: str
    type: str
    actor_id: str
    source_entity_id: str
    source_entity_kind: str
    message: str
    outbox_record_id: UUID
    dedupe_key: str
    created_at: datetime
    is_read: bool = False
    delivery_status: str = DeliveryStatus.PENDING
