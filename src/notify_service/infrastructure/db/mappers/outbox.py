from __future__ import annotations

from notify_service.domain.entities.outbox_record import OutboxRecord
from notify_service.infrastructure.db.models.outbox import OutboxRecordModel


def model_to_entity(model: OutboxRecordModel) -> OutboxRecord:
    return OutboxRecord(
        id=model.id,
        event_type=model.event_type,
        payload=model.payload,
        dedupe_key=model.dedupe_key,
        status=model.status,
        created_at=model.created_at,
        processed_at=model.processed_at,
    )
