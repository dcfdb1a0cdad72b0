from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from notify_service.domain.entities.outbox_record import OutboxRecord


class OutboxStore(Protocol):
    async def add_if_not_exists(self, record: OutboxRecord) -> tuple[OutboxRecord, bool]:
        """Insert unless ``dedupe_key`` already exists. Returns (record, created)."""
        ...

    async def get_by_id(self, record_id: UUID) -> OutboxRecord | None: ...

    async def mark_processed(self, record_id: UUID, processed_at: datetime) -> bool:
        """PENDING → PROCESSED. Returns False if the record was not pending."""
        ...

    async def list_pending(self, older_than: datetime, limit: int) -> list[OutboxRecord]:
        """Pending records created before ``older_than``, oldest first."""
        ...
