"""
Websocket feed of scanner events.

Every message is a JSON object {"type": ..., "data": ...}. The scanner
publishes scan_started, gateway_detected and scan_completed; clients may send
{"type": "ping"} and get a pong back.
"""

import asyncio
import json
import logging
from typing import Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .schemas import GatewayResponse, ScanCompletedEvent, ScanStartedEvent

logger = logging.getLogger(__name__)

router = APIRouter()

KEEPALIVE_INTERVAL = 30.0

EVENT_SCHEMAS = {
    "scan_started": ScanStartedEvent,
    "gateway_detected": GatewayResponse,
    "scan_completed": ScanCompletedEvent,
}


def encode_event(event_type: str, data: Optional[dict] = None) -> str:
    """Serialize an event, validating scanner payloads against their schema."""
    schema = EVENT_SCHEMAS.get(event_type)
    if schema is not None:
        data = schema.model_validate(data).model_dump(mode="json")
    return json.dumps({"type": event_type, "data": data or {}})


def _message_type(text: str) -> Optional[str]:
    try:
        message = json.loads(text)
    except json.JSONDecodeError:
        return None
    return message.get("type") if isinstance(message, dict) else None


class EventFeed:
    """Fans scanner events out to the connected websocket clients."""

    def __init__(self):
        self.clients: Set[WebSocket] = set()

    async def join(self, websocket: WebSocket):
        await websocket.accept()
        self.clients.add(websocket)
        logger.debug(f"Websocket client joined, {len(self.clients)} connected")

    def leave(self, websocket: WebSocket):
        self.clients.discard(websocket)

    async def publish(self, event_type: str, data: dict):
        message = encode_event(event_type, data)
        # Clients can join or leave while a send is pending
        for client in list(self.clients):
            try:
                await client.send_text(message)
            except Exception as e:
                logger.debug(f"Dropping websocket client: {e}")
                self.leave(client)


feed = EventFeed()


async def scanner_callback(event_type: str, data: dict):
    """Scanner callback forwarding events to the websocket feed."""
    await feed.publish(event_type, data)


@router.websocket("/ws")
async def scan_events(websocket: WebSocket):
    await feed.join(websocket)
    try:
        await websocket.send_text(encode_event("connected", {"clients": len(feed.clients)}))
        while True:
            try:
                text = await asyncio.wait_for(websocket.receive_text(), timeout=KEEPALIVE_INTERVAL)
            except asyncio.TimeoutError:
                await websocket.send_text(encode_event("ping"))
                continue

            if _message_type(text) == "ping":
                await websocket.send_text(encode_event("pong"))
    except WebSocketDisconnect:
        logger.debug("Websocket client disconnected")
    finally:
        feed.leave(websocket)
