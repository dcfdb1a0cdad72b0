from __future__ import annotations

from typing import Protocol, Sequence
from uuid import UUID

from notify_service.domain.entities.notification import Notification


class NotificationReader(Protocol):
    async def get_by_id(self, notification_id: UUID) -> Notification | None: ...

    async def list_for_recipient(
        self,
        recipient_user_id: str,
        *,
        cursor: str | None = None,
        limit: int = 20,
    ) -> list[Notification]:
        """Newest first, (created_at, id) descending, strictly after ``cursor``."""
        ...

    async def count_unread(self, recipient_user_id: str) -> int: ...


class NotificationWriter(Protocol):
    async def create_if_not_exists(
        self, notification: Notification
    ) -> tuple[Notification, bool]:
        """Insert unless ``dedupe_key`` exists. Returns (notification, created)."""
        ...

    async def set_delivery_status(
        self, notification_ids: Sequence[UUID], status: str
    ) -> None:
        """Update delivery status. A notification already EMITTED is left as is."""
        ...

    async def mark_read(self, notification_id: UUID) -> Notification | None: ...
