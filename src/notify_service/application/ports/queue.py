from __future__ import annotations

from typing import Protocol

from notify_service.application.dto.jobs import FanoutJob


class JobQueue(Protocol):
    async def enqueue(self, job: FanoutJob) -> bool:
        """Queue a job. Returns False if a job with the same id is already queued."""
        ...
