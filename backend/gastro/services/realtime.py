"""WebSocket connection manager for realtime item updates.

Channels are named ``items:<restaurant_id>`` so a terminal only hears about
its own restaurant's stock.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import WebSocket, status

logger = logging.getLogger(__name__)


def items_channel(restaurant_id: int) -> str:
    return f"items:{restaurant_id}"


class ConnectionManager:
    """Manages WebSocket connections grouped by channel."""

    MAX_CONNECTIONS_PER_CHANNEL = 1000

    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}
        self.connection_metadata: Dict[int, Dict[str, Any]] = {}

    async def connect(self, websocket: WebSocket, channel: str, user_id: Optional[int] = None) -> bool:
        """Accept and register a WebSocket. Returns False if the channel is full."""
        if len(self.active_connections.get(channel, [])) >= self.MAX_CONNECTIONS_PER_CHANNEL:
            logger.warning(f"WebSocket connection rejected: channel '{channel}' at capacity")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return False

        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)
        self.connection_metadata[id(websocket)] = {
            "connected_at": datetime.now(timezone.utc),
            "user_id": user_id,
            "channel": channel,
        }
        logger.debug(f"WebSocket connected to channel '{channel}', user_id={user_id}")
        return True

    def disconnect(self, websocket: WebSocket, channel: str):
        connections = self.active_connections.get(channel)
        if connections and websocket in connections:
            connections.remove(websocket)
            if not connections:
                del self.active_connections[channel]
        self.connection_metadata.pop(id(websocket), None)
        logger.debug(f"WebSocket disconnected from channel '{channel}'")

    async def broadcast(self, message: Dict[str, Any], channel: str):
        """Send a message to every connection in a channel, dropping dead ones."""
        disconnected = []
        for connection in list(self.active_connections.get(channel, [])):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                disconnected.append(connection)

        for conn in disconnected:
            self.disconnect(conn, channel)

    def get_connection_count(self, channel: Optional[str] = None) -> int:
        if channel:
            return len(self.active_connections.get(channel, []))
        return sum(len(conns) for conns in self.active_connections.values())


ws_manager = ConnectionManager()


def item_payload(item) -> Dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "current_stock": float(item.current_stock),
        "min_stock": float(item.min_stock),
        "expiry_date": item.expiry_date.isoformat() if item.expiry_date else None,
        "is_low_stock": item.is_low_stock,
    }


async def publish_item_changes(restaurant_id: int, items) -> None:
    """Push the new state of changed items. Later pushes overwrite earlier ones client-side."""
    channel = items_channel(restaurant_id)
    if not ws_manager.get_connection_count(channel):
        return
    for item in items:
        try:
            await ws_manager.broadcast({"event": "item_updated", "item": item_payload(item)}, channel)
        except Exception as exc:
            logger.warning("WebSocket broadcast failed: %s", exc)
