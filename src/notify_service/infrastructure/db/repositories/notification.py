from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from notify_service.application.cursor import decode_cursor
from notify_service.domain.entities.notification import Notification
from notify_service.domain.value_objects.enums import DeliveryStatus
from notify_service.infrastructure.db.mappers import notification as mapper
from notify_service.infrastructure.db.models.notification import NotificationModel


class NotificationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, notification_id: UUID) -> Notification | None:
        model = await self._session.get(NotificationModel, notification_id)
        return mapper.model_to_entity(model) if model else None

    async def list_for_recipient(
        self,
        recipient_user_id: str,
        *,
        cursor: str | None = None,
        limit: int = 20,
    ) -> list[Notification]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.recipient_user_id == recipient_user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .limit(limit)
        )
        if cursor:
            ts, nid = decode_cursor(cursor)
            stmt = stmt.where(
                (NotificationModel.created_at < ts)
                | ((NotificationModel.created_at == ts) & (NotificationModel.id < nid))
            )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def count_unread(self, recipient_user_id: str) -> int:
        stmt = select(func.count()).select_from(NotificationModel).where(
            NotificationModel.recipient_user_id == recipient_user_id,
            NotificationModel.is_read.is_(False),
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())


class NotificationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(
        self, notification: Notification
    ) -> tuple[Notification, bool]:
        """Insert notification idempotently. Returns (notification, created_flag)."""
        stmt = (
            pg_insert(NotificationModel)
            .values(**mapper.entity_to_values(notification))
            .on_conflict_do_nothing(constraint="uq_notifications_dedupe_key")
            .returning(NotificationModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is not None:
            return mapper.model_to_entity(row), True

        # Already notified: return the stored row
        existing = await self._get_by_dedupe_key(notification.dedupe_key)
        assert existing is not None
        return existing, False

    async def _get_by_dedupe_key(self, dedupe_key: str) -> Notification | None:
        stmt = select(NotificationModel).where(NotificationModel.dedupe_key == dedupe_key)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def set_delivery_status(
        self, notification_ids: Sequence[UUID], status: str
    ) -> None:
        if not notification_ids:
            return
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.id.in_(list(notification_ids)),
                NotificationModel.delivery_status != DeliveryStatus.EMITTED,
            )
            .values(delivery_status=status)
        )
        await self._session.execute(stmt)

    async def mark_read(self, notification_id: UUID) -> Notification | None:
        stmt = (
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .values(is_read=True)
            .returning(NotificationModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None
