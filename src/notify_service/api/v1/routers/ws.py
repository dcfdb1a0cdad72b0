from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from notify_service.api.deps import SessionRegistryDep
from notify_service.application.ports.sessions import SessionRegistry
from notify_service.config import settings
from notify_service.infrastructure.ws.protocol import WsInbound, WsOutbound

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws/notifications")
async def ws_notifications(websocket: WebSocket, registry: SessionRegistryDep) -> None:
    await websocket.accept()
    registry.register(websocket)

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name="ws-heartbeat",
    )
    try:
        await _read_loop(websocket, registry)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error")
    finally:
        heartbeat_task.cancel()
        registry.unregister(websocket)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(WsOutbound(type="pong", data={}).model_dump_json())
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("WS heartbeat stopped", exc_info=True)


async def _send(ws: WebSocket, type_: str, data: dict) -> None:
    await ws.send_text(WsOutbound(type=type_, data=data).model_dump_json())


async def _read_loop(ws: WebSocket, registry: SessionRegistry) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await _send(ws, "error", {"code": "invalid_payload"})
            continue

        if msg.type == "ping":
            await _send(ws, "pong", {})

        elif msg.type == "join":
            recipient_id = msg.recipient_id
            if not recipient_id:
                await _send(ws, "error", {"code": "invalid_data", "detail": "recipientId is required"})
                continue
            # One recipient per session: joining switches rooms.
            for previous in registry.joined_recipients(ws):
                if previous != recipient_id:
                    registry.leave(ws, previous)
            registry.join(ws, recipient_id)
            logger.debug("WS joined recipient %s", recipient_id)
            await _send(ws, "joined", {"recipientId": recipient_id})

        elif msg.type == "leave":
            recipient_id = msg.recipient_id
            if recipient_id:
                registry.leave(ws, recipient_id)
                await _send(ws, "left", {"recipientId": recipient_id})

        else:
            await _send(ws, "error", {"code": "unknown_type", "type": msg.type})

