from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from notify_service.domain.entities.outbox_record import OutboxRecord
from notify_service.domain.value_objects.enums import OutboxStatus
from notify_service.infrastructure.db.mappers import outbox as mapper
from notify_service.infrastructure.db.models.outbox import OutboxRecordModel


class OutboxStoreRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_if_not_exists(self, record: OutboxRecord) -> tuple[OutboxRecord, bool]:
        stmt = (
            pg_insert(OutboxRecordModel)
            .values(
                id=record.id,
                event_type=record.event_type,
                payload=record.payload,
                dedupe_key=record.dedupe_key,
                status=record.status,
                created_at=record.created_at,
            )
            .on_conflict_do_nothing(constraint="uq_outbox_records_dedupe_key")
            .returning(OutboxRecordModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is not None:
            return mapper.model_to_entity(row), True

        existing = await self.get_by_dedupe_key(record.dedupe_key)
        assert existing is not None
        return existing, False

    async def get_by_id(self, record_id: UUID) -> OutboxRecord | None:
        model = await self._session.get(OutboxRecordModel, record_id)
        return mapper.model_to_entity(model) if model else None

    async def get_by_dedupe_key(self, dedupe_key: str) -> OutboxRecord | None:
        stmt = select(OutboxRecordModel).where(OutboxRecordModel.dedupe_key == dedupe_key)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def mark_processed(self, record_id: UUID, processed_at: datetime) -> bool:
        stmt = (
            update(OutboxRecordModel)
            .where(
                OutboxRecordModel.id == record_id,
                OutboxRecordModel.status == OutboxStatus.PENDING,
            )
            .values(status=OutboxStatus.PROCESSED, processed_at=processed_at)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_pending(self, older_than: datetime, limit: int) -> list[OutboxRecord]:
        stmt = (
            select(OutboxRecordModel)
            .where(
                OutboxRecordModel.status == OutboxStatus.PENDING,
                OutboxRecordModel.created_at < older_than,
            )
            .order_by(OutboxRecordModel.created_at.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]
