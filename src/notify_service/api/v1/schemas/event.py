from __future__ import annotations

from uuid import UUID

from notify_service.api.v1.schemas.common import CamelModel


class IngestAcceptedResponse(CamelModel):
    event_id: UUID | None = None
    message: str
