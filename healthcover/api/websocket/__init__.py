"""
WebSocket module for live view subscriptions.
"""

from healthcover.api.websocket.manager import (
    ConnectionState,
    ViewConnection,
    WebSocketManager,
    get_websocket_manager,
    snapshot_message,
)

__all__ = [
    "ConnectionState",
    "ViewConnection",
    "WebSocketManager",
    "get_websocket_manager",
    "snapshot_message",
]
