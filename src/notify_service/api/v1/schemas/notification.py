from __future__ import annotations

from datetime import datetime
from uuid import UUID

from notify_service.api.v1.schemas.common import CamelModel, PaginatedResponse


class NotificationResponse(CamelModel):
    id: UUID
    recipient_user_id: str
    type: str
    actor_id: str
    source_entity_id: str
    source_entity_kind: str
    message: str
    is_read: bool
    delivery_status: str
    created_at: datetime


NotificationPageResponse = PaginatedResponse[NotificationResponse]


class UnreadCountResponse(CamelModel):
    count: int
