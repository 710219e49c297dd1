"""WebSocket stream relaying notification hub events to connected clients."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from turnline.api.v1.dependencies import HubDep
from turnline.services.notifications import Event

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

QUEUE_MAXSIZE = 256


@router.websocket("/events")
async def event_stream(websocket: WebSocket, hub: HubDep) -> None:
    """Forward every published event as ``{"event": name, "data": payload}``.

    Events are published from request threads; they are handed to this
    connection's loop and dropped for this client if it falls too far behind.
    """
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=QUEUE_MAXSIZE)

    def _enqueue(event: Event) -> None:
        if queue.full():
            logger.warning("Dropping %s for a slow event stream client", event.name)
            return
        queue.put_nowait(event)

    def _on_event(event: Event) -> None:
        loop.call_soon_threadsafe(_enqueue, event)

    unsubscribe = hub.subscribe(_on_event)
    receiver = asyncio.create_task(websocket.receive_text())
    getter = asyncio.create_task(queue.get())
    try:
        while True:
            done, _ = await asyncio.wait(
                {getter, receiver},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if receiver in done:
                # Incoming frames are ignored; a close raises WebSocketDisconnect.
                receiver.result()
                receiver = asyncio.create_task(websocket.receive_text())
            if getter in done:
                await websocket.send_json(getter.result().to_message())
                getter = asyncio.create_task(queue.get())
    except WebSocketDisconnect:
        logger.debug("Event stream client disconnected")
    finally:
        unsubscribe()
        receiver.cancel()
        getter.cancel()
