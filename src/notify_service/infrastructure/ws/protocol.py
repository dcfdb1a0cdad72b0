"""WebSocket message envelope models for the push edge."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server: join | leave | ping."""

    type: str
    data: dict[str, Any] = {}

    @property
    def recipient_id(self) -> str:
        value = self.data.get("recipientId") or self.data.get("recipient_id") or ""
        return str(value).strip()


class WsOutbound(BaseModel):
    """Server → Client: notification:new | joined | left | pong | error."""

    type: str
    data: dict[str, Any] = {}
