from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Header
from fastapi.responses import JSONResponse

from notify_service.api.deps import JobQueueDep, UoWDep
from notify_service.api.v1.schemas.event import IngestAcceptedResponse
from notify_service.application.dto.events import Accepted, AlreadyProcessed, Rejected
from notify_service.services import ingest_service

router = APIRouter(prefix="/api/v1/events", tags=["events"])


@router.post(
    "",
    status_code=202,
    response_model=IngestAcceptedResponse,
    responses={200: {"model": IngestAcceptedResponse}, 400: {"description": "Invalid event"}},
)
async def ingest_event(
    uow: UoWDep,
    queue: JobQueueDep,
    payload: Any = Body(...),
    idempotency_key: str | None = Header(None, alias="Idempotency-Key", max_length=200),
) -> JSONResponse:
    result = await ingest_service.submit(
        payload, uow, queue, idempotency_key=idempotency_key,
    )
    match result:
        case Accepted(event_id=event_id):
            body = IngestAcceptedResponse(event_id=event_id, message="Event queued for processing")
            status_code = 202
        case AlreadyProcessed(event_id=event_id):
            body = IngestAcceptedResponse(event_id=event_id, message="Event already received")
            status_code = 200
        case Rejected(reason=reason):
            return JSONResponse(status_code=400, content={"detail": reason})
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
    )
