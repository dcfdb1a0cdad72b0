from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from notify_service.application.repositories.directory import DirectoryReader
from notify_service.application.repositories.notification import (
    NotificationReader,
    NotificationWriter,
)
from notify_service.application.repositories.outbox import OutboxStore


class UnitOfWork(Protocol):
    outbox: OutboxStore
    notifications: NotificationReader
    notifications_w: NotificationWriter
    directory: DirectoryReader

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


# Opens a fresh unit of work (its own DB session) per call.
UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
