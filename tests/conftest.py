"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import dataclasses
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Sequence
from uuid import UUID

import pytest

from notify_service.application.cursor import decode_cursor
from notify_service.application.dto.jobs import FanoutJob
from notify_service.domain.entities.notification import Notification, notification_dedupe_key
from notify_service.domain.entities.outbox_record import OutboxRecord
from notify_service.domain.value_objects.enums import (
    DeliveryStatus,
    EntityKind,
    NotificationType,
    OutboxStatus,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = T0) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


def make_outbox_record(
    payload: dict[str, Any],
    *,
    record_id: UUID | None = None,
    status: str = OutboxStatus.PENDING,
    created_at: datetime = T0,
) -> OutboxRecord:
    return OutboxRecord(
        id=record_id or uuid.uuid4(),
        event_type=str(payload.get("type", "")),
        payload=payload,
        dedupe_key=f"test:{uuid.uuid4()}",
        status=status,
        created_at=created_at,
    )


def make_notification(
    recipient_user_id: str = "B",
    *,
    created_at: datetime = T0,
    actor_id: str = "A",
    is_read: bool = False,
    outbox_record_id: UUID | None = None,
) -> Notification:
    outbox_record_id = outbox_record_id or uuid.uuid4()
    return Notification(
        id=uuid.uuid4(),
        recipient_user_id=recipient_user_id,
        type=NotificationType.NEW_POST_FROM_FOLLOWING,
        actor_id=actor_id,
        source_entity_id="p1",
        source_entity_kind=EntityKind.POST,
        message=f"{actor_id} created a new post",
        outbox_record_id=outbox_record_id,
        dedupe_key=notification_dedupe_key(outbox_record_id, recipient_user_id),
        created_at=created_at,
        is_read=is_read,
    )


@dataclass
class FakeOutboxStore:
    _records: dict[UUID, OutboxRecord] = field(default_factory=dict)

    async def add_if_not_exists(self, record: OutboxRecord) -> tuple[OutboxRecord, bool]:
        for existing in self._records.values():
            if existing.dedupe_key == record.dedupe_key:
                return existing, False
        self._records[record.id] = record
        return record, True

    async def get_by_id(self, record_id: UUID) -> OutboxRecord | None:
        return self._records.get(record_id)

    async def mark_processed(self, record_id: UUID, processed_at: datetime) -> bool:
        record = self._records.get(record_id)
        if record is None or record.status != OutboxStatus.PENDING:
            return False
        self._records[record_id] = dataclasses.replace(
            record, status=OutboxStatus.PROCESSED, processed_at=processed_at,
        )
        return True

    async def list_pending(self, older_than: datetime, limit: int) -> list[OutboxRecord]:
        pending = [
            r for r in self._records.values()
            if r.status == OutboxStatus.PENDING and r.created_at < older_than
        ]
        return sorted(pending, key=lambda r: r.created_at)[:limit]


@dataclass
class FakeNotificationStore:
    """Reader and writer over one in-memory table."""

    _rows: list[Notification] = field(default_factory=list)
    fail_for: set[str] = field(default_factory=set)
    write_delay: float = 0.0
    in_flight: int = 0
    peak_in_flight: int = 0

    def for_recipient(self, recipient_user_id: str) -> list[Notification]:
        return [n for n in self._rows if n.recipient_user_id == recipient_user_id]

    async def get_by_id(self, notification_id: UUID) -> Notification | None:
        return next((n for n in self._rows if n.id == notification_id), None)

    async def list_for_recipient(
        self,
        recipient_user_id: str,
        *,
        cursor: str | None = None,
        limit: int = 20,
    ) -> list[Notification]:
        rows = sorted(
            self.for_recipient(recipient_user_id),
            key=lambda n: (n.created_at, n.id),
            reverse=True,
        )
        if cursor:
            after = decode_cursor(cursor)
            rows = [n for n in rows if (n.created_at, n.id) < after]
        return rows[:limit]

    async def count_unread(self, recipient_user_id: str) -> int:
        return sum(1 for n in self.for_recipient(recipient_user_id) if not n.is_read)

    async def create_if_not_exists(self, notification: Notification) -> tuple[Notification, bool]:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.write_delay:
                await asyncio.sleep(self.write_delay)
            return self._insert(notification)
        finally:
            self.in_flight -= 1

    def _insert(self, notification: Notification) -> tuple[Notification, bool]:
        if notification.recipient_user_id in self.fail_for:
            raise RuntimeError(f"write failed for {notification.recipient_user_id}")
        for existing in self._rows:
            if existing.dedupe_key == notification.dedupe_key:
                return existing, False
        self._rows.append(notification)
        return notification, True

    async def set_delivery_status(self, notification_ids: Sequence[UUID], status: str) -> None:
        ids = set(notification_ids)
        for i, n in enumerate(self._rows):
            if n.id in ids and n.delivery_status != DeliveryStatus.EMITTED:
                self._rows[i] = dataclasses.replace(n, delivery_status=status)

    async def mark_read(self, notification_id: UUID) -> Notification | None:
        for i, n in enumerate(self._rows):
            if n.id == notification_id:
                self._rows[i] = dataclasses.replace(n, is_read=True)
                return self._rows[i]
        return None


@dataclass
class FakeDirectory:
    # followee -> followers
    follows: dict[str, list[str]] = field(default_factory=dict)
    names: dict[str, str] = field(default_factory=dict)

    async def list_follower_ids(self, user_id: str) -> list[str]:
        return list(self.follows.get(user_id, []))

    async def get_display_name(self, user_id: str) -> str | None:
        return self.names.get(user_id)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    outbox: FakeOutboxStore = field(default_factory=FakeOutboxStore)
    notifications: FakeNotificationStore = field(default_factory=FakeNotificationStore)
    directory: FakeDirectory = field(default_factory=FakeDirectory)
    commits: int = 0

    @property
    def notifications_w(self) -> FakeNotificationStore:
        return self.notifications

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        pass

    async def flush(self) -> None:
        pass


def uow_factory_for(uow: FakeUoW):
    """A UoWFactory whose units of work all share ``uow``'s stores."""

    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUoW]:
        yield uow

    return _factory


@dataclass
class FakeJobQueue:
    jobs: list[FanoutJob] = field(default_factory=list)
    fail: bool = False

    async def enqueue(self, job: FanoutJob) -> bool:
        if self.fail:
            raise ConnectionError("queue unavailable")
        if any(j.job_id == job.job_id for j in self.jobs):
            return False
        self.jobs.append(job)
        return True


@dataclass
class FakePublisher:
    published: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    fail: bool = False

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("relay unavailable")
        self.published.append((channel, payload))


class FakeWebSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.sent: list[str] = []
        self.broken = broken

    async def send_text(self, data: str) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


@pytest.fixture
def queue() -> FakeJobQueue:
    return FakeJobQueue()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()
