from __future__ import annotations

import math
import uuid
from datetime import timedelta

import pytest

from notify_service.application.cursor import encode_cursor
from notify_service.application.exceptions import NotFoundError, ValidationError
from notify_service.services import notification_service
from tests.conftest import T0, make_notification


def _seed(uow, count: int, recipient: str = "B", *, same_timestamp: bool = False):
    rows = []
    for i in range(count):
        ts = T0 if same_timestamp else T0 + timedelta(seconds=i)
        n = make_notification(recipient, created_at=ts)
        uow.notifications._rows.append(n)
        rows.append(n)
    return rows


async def _collect_pages(uow, recipient: str, limit: int):
    pages = []
    cursor = None
    while True:
        page = await notification_service.list_notifications(recipient, cursor, limit, uow)
        pages.append(page)
        if not page.has_more:
            return pages
        cursor = page.next_cursor


@pytest.mark.asyncio
@pytest.mark.parametrize("count,limit", [(7, 3), (6, 3), (1, 5), (0, 5)])
async def test_paging_visits_every_notification_once_newest_first(uow, count, limit):
    rows = _seed(uow, count)

    pages = await _collect_pages(uow, "B", limit)

    seen = [n.id for page in pages for n in page.items]
    expected = [n.id for n in sorted(rows, key=lambda n: n.created_at, reverse=True)]
    assert seen == expected
    assert len(pages) == max(1, math.ceil(count / limit))
    assert pages[-1].next_cursor is None


@pytest.mark.asyncio
async def test_paging_with_identical_timestamps_has_no_gaps(uow):
    rows = _seed(uow, 5, same_timestamp=True)

    pages = await _collect_pages(uow, "B", 2)

    seen = [n.id for page in pages for n in page.items]
    assert len(seen) == 5
    assert set(seen) == {n.id for n in rows}


@pytest.mark.asyncio
async def test_list_only_returns_recipient_rows(uow):
    _seed(uow, 2, "B")
    _seed(uow, 3, "C")

    page = await notification_service.list_notifications("B", None, 10, uow)

    assert {n.recipient_user_id for n in page.items} == {"B"}
    assert len(page.items) == 2


@pytest.mark.asyncio
async def test_limit_is_clamped(uow):
    _seed(uow, 60)

    page = await notification_service.list_notifications("B", None, 500, uow)
    assert len(page.items) == notification_service.MAX_PAGE_SIZE

    page = await notification_service.list_notifications("B", None, 0, uow)
    assert len(page.items) == 1


@pytest.mark.asyncio
async def test_invalid_cursor_rejected(uow):
    with pytest.raises(ValidationError):
        await notification_service.list_notifications("B", "not-a-cursor", 10, uow)


@pytest.mark.asyncio
async def test_blank_recipient_rejected(uow):
    with pytest.raises(ValidationError):
        await notification_service.list_notifications("  ", None, 10, uow)
    with pytest.raises(ValidationError):
        await notification_service.unread_count("", uow)


@pytest.mark.asyncio
async def test_mark_read_is_idempotent(uow):
    [n] = _seed(uow, 1)

    first = await notification_service.mark_read(n.id, uow)
    second = await notification_service.mark_read(n.id, uow)

    assert first.is_read and second.is_read
    assert await notification_service.unread_count("B", uow) == 0


@pytest.mark.asyncio
async def test_mark_read_unknown_id(uow):
    with pytest.raises(NotFoundError):
        await notification_service.mark_read(uuid.uuid4(), uow)


@pytest.mark.asyncio
async def test_cursor_past_the_end_returns_empty_page(uow):
    _seed(uow, 3)
    cursor = encode_cursor(T0 - timedelta(days=1), uuid.uuid4())

    page = await notification_service.list_notifications("B", cursor, 10, uow)

    assert page.items == []
    assert page.has_more is False
