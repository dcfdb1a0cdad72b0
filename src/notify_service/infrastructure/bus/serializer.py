"""JSON envelope for relay messages crossing the worker → edge boundary."""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, Enum):
            return o.value
        return super().default(o)


@dataclass(frozen=True, slots=True)
class RelayMessage:
    event: str
    recipient_id: str
    data: dict[str, Any]


def serialize_relay_message(event: str, recipient_id: str, data: dict[str, Any]) -> str:
    envelope = {"event": event, "recipient_id": recipient_id, "data": data}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_relay_message(raw: str | bytes) -> RelayMessage:
    """Raises ``ValueError`` for anything that is not a relay envelope."""
    try:
        envelope = json.loads(raw)
        event = envelope["event"]
        recipient_id = envelope["recipient_id"]
        data = envelope.get("data") or {}
    except (TypeError, KeyError, AttributeError) as exc:
        raise ValueError(f"Malformed relay message: {exc}") from exc
    if not isinstance(recipient_id, str) or not recipient_id:
        raise ValueError("Relay message without recipient_id")
    return RelayMessage(event=event, recipient_id=recipient_id, data=data)
