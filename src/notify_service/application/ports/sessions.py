from __future__ import annotations

from typing import Any, Hashable, Protocol


class SessionRegistry(Protocol):
    """Live client sessions keyed by recipient id."""

    def register(self, session: Hashable) -> None: ...

    def join(self, session: Hashable, recipient_id: str) -> None: ...

    def leave(self, session: Hashable, recipient_id: str) -> None: ...

    def unregister(self, session: Hashable) -> None: ...

    def lookup(self, recipient_id: str) -> frozenset[Hashable]: ...

    def joined_recipients(self, session: Hashable) -> frozenset[str]: ...

    async def emit(self, recipient_id: str, event_type: str, data: dict[str, Any]) -> int:
        """Send to every live session of the recipient. Returns the number reached."""
        ...
