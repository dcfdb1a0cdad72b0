"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends
from fastapi.requests import HTTPConnection

from notify_service.application.ports.queue import JobQueue
from notify_service.application.ports.sessions import SessionRegistry
from notify_service.infrastructure.db.session import AsyncSessionLocal
from notify_service.infrastructure.db.uow import SqlAlchemyUoW


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def get_job_queue(conn: HTTPConnection) -> JobQueue:
    return conn.app.state.job_queue


JobQueueDep = Annotated[JobQueue, Depends(get_job_queue)]


def get_session_registry(conn: HTTPConnection) -> SessionRegistry:
    return conn.app.state.session_registry


SessionRegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
