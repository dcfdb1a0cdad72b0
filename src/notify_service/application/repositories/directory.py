from __future__ import annotations

from typing import Protocol


class DirectoryReader(Protocol):
    """Read-only view of users and follows owned by the profile service."""

    async def list_follower_ids(self, user_id: str) -> list[str]: ...

    async def get_display_name(self, user_id: str) -> str | None: ...
