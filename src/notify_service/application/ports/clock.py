from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Timestamps for outbox records, notifications and dedupe tokens."""

    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def epoch_ms(ts: datetime) -> int:
    return int(ts.timestamp() * 1000)
