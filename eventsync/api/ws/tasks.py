"""WebSocket stream of task change notifications.

Lifecycle of one socket: gate -> register -> accept -> (writer | reader) ->
unregister. The writer is the only coroutine that writes to the socket; the
reader answers pings and notices disconnects.
"""

from __future__ import annotations

import asyncio
import json

from fastapi import WebSocket
from loguru import logger

from eventsync.api.auth import authenticate_websocket
from eventsync.config import get_settings
from eventsync.observability.context import set_correlation_id
from eventsync.realtime.hub import BroadcastHub
from eventsync.realtime.registry import Connection

WS_CLOSE_TRY_AGAIN_LATER = 1013


def _decode(text: str | None) -> dict | None:
    try:
        value = json.loads(text or "")
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


async def _read_client_messages(websocket: WebSocket, hub: BroadcastHub, connection: Connection) -> None:
    heartbeat_sec = get_settings().ws_heartbeat_sec
    while True:
        try:
            message = await asyncio.wait_for(websocket.receive(), timeout=heartbeat_sec)
        except asyncio.TimeoutError:
            if not await hub.send(connection, {"type": "ping"}):
                return
            continue

        if message.get("type") == "websocket.disconnect":
            return

        payload = _decode(message.get("text"))
        kind = payload.get("type") if payload else None
        if kind == "ping":
            reply = {"type": "pong"}
        elif kind == "pong":
            continue
        else:
            # Clients cannot publish task changes.
            reply = {"type": "error", "code": "unsupported_message"}
        if not await hub.send(connection, reply):
            return


async def stream_task_updates(websocket: WebSocket) -> None:
    identity = await authenticate_websocket(websocket)
    if not identity:
        return

    hub: BroadcastHub = websocket.app.state.hub
    registry = hub.registry
    # Registered before accept: an accepted client is in every later snapshot.
    connection_id = await registry.register(websocket, identity)
    connection = await registry.get(connection_id)
    if connection is None:
        return
    set_correlation_id(connection_id)

    writer = reader = None
    dropped = False
    try:
        await websocket.accept()
        writer = asyncio.create_task(hub.run_writer(connection))
        reader = asyncio.create_task(_read_client_messages(websocket, hub, connection))
        done, _pending = await asyncio.wait({writer, reader}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.opt(exception=task.exception()).error("realtime connection {} crashed", connection_id)
        # Inactive here means the hub or shutdown removed it, not the client.
        dropped = not connection.is_active
    finally:
        tasks = [task for task in (writer, reader) if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await registry.unregister(connection_id)

    if dropped:
        try:
            await websocket.close(code=WS_CLOSE_TRY_AGAIN_LATER)
        except Exception as exc:
            logger.debug("close after drop failed for {}: {}", connection_id, exc)
