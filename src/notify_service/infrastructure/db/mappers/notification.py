from __future__ import annotations

from typing import Any

from notify_service.domain.entities.notification import Notification
from notify_service.infrastructure.db.models.notification import NotificationModel


def model_to_entity(model: NotificationModel) -> Notification:
    return Notification(
        id=model.id,
        recipient_user_id=model.recipient_user_id,
        type=model.type,
        actor_id=model.actor_id,
        source_entity_id=model.source_entity_id,
        source_entity_kind=model.source_entity_kind,
        message=model.message,
        outbox_record_id=model.outbox_record_id,
        dedupe_key=model.dedupe_key,
        created_at=model.created_at,
        is_read=model.is_read,
        delivery_status=model.delivery_status,
    )


def entity_to_values(entity: Notification) -> dict[str, Any]:
    return {
        "id": entity.id,
        "recipient_user_id": entity.recipient_user_id,
        "type": entity.type,
        "actor_id": entity.actor_id,
        "source_entity_id": entity.source_entity_id,
        "source_entity_kind": entity.source_entity_kind,
        "message": entity.message,
        "is_read": entity.is_read,
        "outbox_record_id": entity.outbox_record_id,
        "dedupe_key": entity.dedupe_key,
        "delivery_status": entity.delivery_status,
        "created_at": entity.created_at,
    }
