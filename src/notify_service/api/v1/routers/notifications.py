from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query

from notify_service.api.deps import UoWDep
from notify_service.api.v1.schemas.notification import (
    NotificationPageResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from notify_service.config import settings
from notify_service.services import notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationPageResponse)
async def list_notifications(
    uow: UoWDep,
    recipient_id: str = Query(..., alias="recipientId"),
    cursor: str | None = Query(None),
    limit: int = Query(notification_service.DEFAULT_PAGE_SIZE),
) -> NotificationPageResponse:
    page = await notification_service.list_notifications(
        recipient_id, cursor, limit, uow,
        max_limit=settings.NOTIFICATIONS_MAX_PAGE_SIZE,
    )
    return NotificationPageResponse(
        items=[NotificationResponse.model_validate(n) for n in page.items],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    uow: UoWDep,
    recipient_id: str = Query(..., alias="recipientId"),
) -> UnreadCountResponse:
    count = await notification_service.unread_count(recipient_id, uow)
    return UnreadCountResponse(count=count)


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: UUID, uow: UoWDep) -> NotificationResponse:
    notification = await notification_service.mark_read(notification_id, uow)
    return NotificationResponse.model_validate(notification)
