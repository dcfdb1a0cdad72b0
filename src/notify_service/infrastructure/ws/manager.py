"""In-process registry of live WebSocket sessions, keyed by recipient."""
from __future__ import annotations

import logging
from typing import Any, Hashable

from notify_service.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Implements application.ports.sessions.SessionRegistry.

    Mutated only from the event loop. Lookups return snapshots, so sessions
    may join or leave while an emit is awaiting a send.
    """

    def __init__(self) -> None:
        self._sessions: set[Hashable] = set()
        self._by_recipient: dict[str, set[Hashable]] = {}
        self._recipients_of: dict[Hashable, set[str]] = {}

    def register(self, session: Hashable) -> None:
        self._sessions.add(session)
        self._recipients_of.setdefault(session, set())
        logger.debug("WS registered (total=%d)", len(self._sessions))

    def join(self, session: Hashable, recipient_id: str) -> None:
        if session not in self._sessions:
            self.register(session)
        self._by_recipient.setdefault(recipient_id, set()).add(session)
        self._recipients_of[session].add(recipient_id)

    def leave(self, session: Hashable, recipient_id: str) -> None:
        sessions = self._by_recipient.get(recipient_id)
        if sessions:
            sessions.discard(session)
            if not sessions:
                del self._by_recipient[recipient_id]
        joined = self._recipients_of.get(session)
        if joined:
            joined.discard(recipient_id)

    def unregister(self, session: Hashable) -> None:
        for recipient_id in list(self._recipients_of.pop(session, ())):
            self.leave(session, recipient_id)
        self._sessions.discard(session)
        logger.debug("WS unregistered (total=%d)", len(self._sessions))

    def lookup(self, recipient_id: str) -> frozenset[Hashable]:
        return frozenset(self._by_recipient.get(recipient_id, ()))

    def joined_recipients(self, session: Hashable) -> frozenset[str]:
        return frozenset(self._recipients_of.get(session, ()))

    async def emit(self, recipient_id: str, event_type: str, data: dict[str, Any]) -> int:
        """Send to every live session of the recipient; no-op when none is connected."""
        sessions = self.lookup(recipient_id)
        if not sessions:
            return 0
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        sent = 0
        dead: list[Hashable] = []
        for ws in sessions:
            try:
                await ws.send_text(raw)  # type: ignore[attr-defined]
                sent += 1
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.unregister(ws)
        return sent
