from __future__ import annotations

from dataclasses import dataclass, field

from notify_service.domain.entities.notification import Notification


@dataclass(frozen=True, slots=True)
class NotificationPage:
    items: list[Notification] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False
