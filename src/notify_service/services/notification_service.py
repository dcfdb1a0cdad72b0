"""Pull channel: the authoritative way recipients read their notifications."""
from __future__ import annotations

import uuid

from notify_service.application.cursor import decode_cursor, encode_cursor
from notify_service.application.dto.notification import NotificationPage
from notify_service.application.exceptions import NotFoundError, ValidationError
from notify_service.application.uow import UnitOfWork
from notify_service.domain.entities.notification import Notification

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50


def _require_recipient(recipient_id: str) -> str:
    recipient_id = (recipient_id or "").strip()
    if not recipient_id:
        raise ValidationError("recipientId is required")
    return recipient_id


async def list_notifications(
    recipient_id: str,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
    *,
    max_limit: int = MAX_PAGE_SIZE,
) -> NotificationPage:
    """One page of a recipient's notifications, newest first."""
    recipient_id = _require_recipient(recipient_id)
    limit = max(1, min(limit, max_limit))
    if cursor:
        try:
            decode_cursor(cursor)
        except ValueError as exc:
            raise ValidationError("Invalid cursor") from exc

    # One extra row tells us whether another page exists.
    rows = await uow.notifications.list_for_recipient(
        recipient_id, cursor=cursor, limit=limit + 1,
    )
    has_more = len(rows) > limit
    items = rows[:limit]
    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = encode_cursor(last.created_at, last.id)
    return NotificationPage(items=items, next_cursor=next_cursor, has_more=has_more)


async def mark_read(notification_id: uuid.UUID, uow: UnitOfWork) -> Notification:
    notification = await uow.notifications_w.mark_read(notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    await uow.commit()
    return notification


async def unread_count(recipient_id: str, uow: UnitOfWork) -> int:
    recipient_id = _require_recipient(recipient_id)
    return await uow.notifications.count_unread(recipient_id)
