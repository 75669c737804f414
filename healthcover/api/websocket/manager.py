"""
WebSocket Manager for Live Views.

Each connection owns a ViewScope. The manager mounts the requested view in
that scope, pushes a snapshot whenever the view refreshes, and closes the
scope when the client goes away.

FastAPI WebSocket: https://fastapi.tiangolo.com/advanced/websockets/
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from healthcover.schemas.views import serialize_items
from healthcover.services.live_views import LiveView, ViewScope
from healthcover.utils.errors import HealthCoverError

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """WebSocket connection states."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class MessageType(str, Enum):
    """WebSocket message types."""

    SNAPSHOT = "snapshot"
    ERROR = "error"
    PING = "ping"
    PONG = "pong"
    REFETCH = "refetch"
    FILTERS = "filters"


def snapshot_message(view: LiveView) -> dict[str, Any]:
    """JSON-ready snapshot of a view."""
    items = serialize_items(view.kind, view.items, view.extra)
    return {
        "type": MessageType.SNAPSHOT.value,
        "kind": view.kind,
        "version": view.version,
        "items": [item.model_dump(mode="json") for item in items],
        "stats": jsonable_encoder(view.stats),
        "is_loading": view.is_loading,
        "error": view.error,
        "filters": jsonable_encoder(view.filters),
        "updated_at": view.updated_at.isoformat() if view.updated_at else None,
    }


@dataclass
class ViewConnection:
    """Represents an active WebSocket connection and its views."""

    websocket: WebSocket
    kind: str
    scope: ViewScope
    id: UUID = field(default_factory=uuid4)
    view: Optional[LiveView] = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_ping: Optional[datetime] = None
    state: ConnectionState = ConnectionState.CONNECTING


class WebSocketManager:
    """
    Manages WebSocket connections subscribed to live views.

    Features:
    - One ViewScope per connection, closed on disconnect
    - Snapshot push after every view refresh
    - Filter changes and manual refetch from the client
    - Ping/pong for connection health checks
    """

    def __init__(self):
        self._connections: dict[UUID, ViewConnection] = {}
        self._lock = asyncio.Lock()

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket, kind: str, scope: ViewScope) -> ViewConnection:
        """Accept a WebSocket connection and register it."""
        await websocket.accept()

        connection = ViewConnection(
            websocket=websocket,
            kind=kind,
            scope=scope,
            state=ConnectionState.CONNECTED,
        )
        async with self._lock:
            self._connections[connection.id] = connection

        logger.info(
            f"WebSocket connected: view={kind}, total_connections={self.active_connections}"
        )
        return connection

    async def open_view(self, connection: ViewConnection, filters: dict[str, Any]) -> LiveView:
        """
        Mount the connection's view with the given filters and push its snapshot.

        The previous view of the connection is released once the new one
        is mounted; on error the connection keeps its current view.

        Raises:
            InvalidInput: Unknown kind or filter
        """
        previous = connection.view
        view = await connection.scope.get_view(connection.kind, replacing=previous, **filters)

        if view is not previous:
            if previous is not None:
                connection.scope.release(connection.kind, **previous.filters)

            async def push(refreshed: LiveView) -> None:
                await self._send(connection, snapshot_message(refreshed))

            view.add_listener(push)
            connection.view = view
        await self._send(connection, snapshot_message(view))
        return view

    async def disconnect(self, connection: ViewConnection) -> None:
        """Remove a connection and close every view it owns."""
        async with self._lock:
            self._connections.pop(connection.id, None)
        closed = connection.scope.close()
        connection.view = None
        connection.state = ConnectionState.DISCONNECTED

        logger.info(
            f"WebSocket disconnected: view={connection.kind}, views_closed={closed}, "
            f"total_connections={self.active_connections}"
        )

    async def send_error(self, connection: ViewConnection, error: str) -> None:
        await self._send(
            connection,
            {
                "type": MessageType.ERROR.value,
                "kind": connection.kind,
                "error": error,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    async def _send(self, connection: ViewConnection, message: dict[str, Any]) -> None:
        """Send a message to a WebSocket."""
        if connection.state != ConnectionState.CONNECTED:
            return
        try:
            await connection.websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.warning(f"Failed to send to WebSocket: {e}")
            connection.state = ConnectionState.DISCONNECTED

    async def handle_client_message(self, connection: ViewConnection, data: str) -> None:
        """
        Handle incoming message from client.

        Supports:
        - ping: Respond with pong for keepalive
        - refetch: Refetch the view; the snapshot follows through the listener
        - filters: Replace the view with one using the new filters
        """
        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON received: {data[:100]}")
            await self.send_error(connection, "Invalid JSON message")
            return

        msg_type = str(message.get("type", "")).lower() if isinstance(message, dict) else ""

        if msg_type == MessageType.PING.value:
            connection.last_ping = datetime.now(timezone.utc)
            await self._send(
                connection,
                {"type": MessageType.PONG.value, "timestamp": connection.last_ping.isoformat()},
            )

        elif msg_type == MessageType.REFETCH.value:
            if connection.view is not None:
                applied = await connection.view.refetch()
                if not applied and connection.view.error:
                    await self.send_error(connection, connection.view.error)

        elif msg_type == MessageType.FILTERS.value:
            filters = message.get("filters") or {}
            if not isinstance(filters, dict):
                await self.send_error(connection, "filters must be an object")
                return
            try:
                await self.open_view(connection, filters)
            except HealthCoverError as e:
                await self.send_error(connection, str(e))

        else:
            await self.send_error(connection, f"Unknown message type: {msg_type or '<none>'}")


# =============================================================================
# Singleton Instance
# =============================================================================


_websocket_manager: Optional[WebSocketManager] = None


def get_websocket_manager() -> WebSocketManager:
    """
    Get the global WebSocket manager instance.

    Returns:
        WebSocketManager singleton
    """
    global _websocket_manager
    if _websocket_manager is None:
        _websocket_manager = WebSocketManager()
    return _websocket_manager
