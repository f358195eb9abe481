"""WebSocket stream of broadcast events."""

from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from loguru import logger

from agowash_api.api.dependencies.services import get_websocket_services
from agowash_api.services.container import ServiceContainer

router = APIRouter(tags=["events"])


@router.websocket("/events")
async def event_stream(
    websocket: WebSocket,
    services: ServiceContainer = Depends(get_websocket_services),
) -> None:
    expected = services.settings.api_key
    if expected:
        token = websocket.query_params.get("token") or ""
        header = websocket.headers.get("authorization", "")
        if header.lower().startswith("bearer "):
            token = header[7:].strip()
        if token != expected:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    await websocket.accept()
    with services.broadcaster.subscribe() as subscription:
        logger.info("Event subscriber connected", subscribers=services.broadcaster.subscriber_count)
        try:
            async for envelope in subscription:
                await websocket.send_json(envelope.as_message())
        except WebSocketDisconnect as exc:
            logger.info("Event subscriber disconnected", code=exc.code)
