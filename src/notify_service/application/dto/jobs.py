from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID


@dataclass(frozen=True, slots=True)
class FanoutJob:
    outbox_record_id: UUID
    attempt: int = 1

    @property
    def job_id(self) -> str:
        return f"{self.outbox_record_id}-{self.attempt}"

    def next_attempt(self) -> FanoutJob:
        return FanoutJob(self.outbox_record_id, self.attempt + 1)

    def to_fields(self) -> dict[str, Any]:
        return {
            "outbox_record_id": str(self.outbox_record_id),
            "attempt": str(self.attempt),
        }

    @classmethod
    def from_fields(cls, fields: dict[str, Any]) -> FanoutJob:
        return cls(
            outbox_record_id=UUID(fields["outbox_record_id"]),
            attempt=int(fields.get("attempt", 1)),
        )
