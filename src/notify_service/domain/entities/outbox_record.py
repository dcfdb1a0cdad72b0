from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from notify_service.domain.value_objects.enums import OutboxStatus


@dataclass(frozen=True, slots=True)
class OutboxRecord:
    id: UUID
    event_type: str
    payload: dict[str, Any]
    dedupe_key: str
    status: str
    created_at: datetime
    processed_at: datetime | None = None

    @property
    def is_processed(self) -> bool:
        return self.status == OutboxStatus.PROCESSED
