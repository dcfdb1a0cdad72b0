from __future__ import annotations

from typing import Any, Protocol


class RelayPublisher(Protocol):
    """Broadcasts relay messages to every edge process.

    ``payload`` carries ``event_type`` and ``recipient_id`` next to the
    message body; edges route on ``recipient_id``.
    """

    async def publish(self, channel: str, payload: dict[str, Any]) -> None: ...
