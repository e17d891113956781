"""
Real-time channel for pit viewers.

The socket carries no authentication. After connecting, a viewer sends
``{"type": "join", "pitId": "<id>"}``; every other inbound frame is ignored.
The server only ever sends ``{"type": "newMessage", "message": {...}}``.
"""
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from anonyworks.services.connection_broker import ConnectionBroker, WebSocketConnection
from anonyworks.services.pit_registry import parse_pit_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


def parse_join(raw):
    """Return the pit id from a join frame, or None for anything else."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict) or data.get("type") != "join":
        return None
    return parse_pit_id(data.get("pitId"))


@router.websocket("/ws")
async def live_updates(websocket: WebSocket):
    broker: ConnectionBroker = websocket.app.state.broker
    await websocket.accept()
    connection = WebSocketConnection(websocket)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text") if frame.get("text") is not None else frame.get("bytes")
            pit_id = parse_join(raw)
            if pit_id is None:
                logger.debug("Ignoring live frame: %.100s", raw)
                continue
            broker.join(connection, pit_id)
    except WebSocketDisconnect:
        pass
    finally:
        connection.mark_closed()
        broker.leave(connection)
