from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from notify_service.infrastructure.db.models.directory import FollowModel, UserModel


class DirectoryReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_follower_ids(self, user_id: str) -> list[str]:
        stmt = (
            select(FollowModel.follower_id)
            .where(FollowModel.followee_id == user_id)
            .order_by(FollowModel.follower_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_display_name(self, user_id: str) -> str | None:
        stmt = select(UserModel.name).where(UserModel.id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
