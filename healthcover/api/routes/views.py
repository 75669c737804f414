"""
Live View Endpoints.

List endpoints run one fetch of the matching live view; the WebSocket
endpoint keeps the view mounted and pushes a snapshot after every refresh.
"""

from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from healthcover.api.config import settings
from healthcover.api.deps import get_view_session_maker
from healthcover.api.websocket import get_websocket_manager
from healthcover.db.change_feed import get_change_feed
from healthcover.db.connection import get_session_maker
from healthcover.schemas.provider import NotificationResponse
from healthcover.schemas.views import ListResponse, serialize_items
from healthcover.services.live_views import LiveView, NotificationView, ViewScope
from healthcover.utils.errors import HealthCoverError, ServiceUnavailableError
from healthcover.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["views"])


async def fetch_list_response(
    view_type: type[LiveView],
    session_maker: async_sessionmaker[AsyncSession],
    **filters: Any,
) -> ListResponse:
    """
    Run one fetch of a view and shape it as a list response.

    Raises:
        InvalidInput: Unknown filter value
        ServiceUnavailableError: The fetch failed
    """
    view = view_type(session_maker, None, **filters)
    await view.refetch()
    if view.error:
        raise ServiceUnavailableError(view.error)
    return ListResponse(
        items=serialize_items(view.kind, view.items, view.extra),
        stats=view.stats,
        is_loading=view.is_loading,
    )


@router.get("/api/v1/notifications", response_model=ListResponse[NotificationResponse])
async def list_notifications(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_view_session_maker),
) -> ListResponse:
    """Current staff alerts, most recent first."""
    return await fetch_list_response(NotificationView, session_maker)


# =============================================================================
# WebSocket Endpoint
# =============================================================================


@router.websocket("/ws/views/{kind}")
async def websocket_live_view(websocket: WebSocket, kind: str) -> None:
    """
    Live view subscription.

    Query parameters are the initial filters of the view.

    Message Format (Server -> Client):
    ```json
    {
        "type": "snapshot",
        "kind": "claims",
        "version": 3,
        "items": [...],
        "stats": {"soumis": 2, "total": 5, ...},
        "is_loading": false,
        "error": null,
        "filters": {"status": "soumis"}
    }
    ```

    Client Messages:
    - `{"type": "ping"}` - Keepalive, server responds with pong
    - `{"type": "refetch"}` - Force a full refetch
    - `{"type": "filters", "filters": {...}}` - Replace the view filters
    """
    manager = get_websocket_manager()
    scope = ViewScope(
        get_session_maker(),
        get_change_feed(),
        max_views=settings.WS_MAX_VIEWS_PER_CONNECTION,
    )
    filters = dict(websocket.query_params)

    connection = await manager.connect(websocket, kind, scope)
    try:
        try:
            await manager.open_view(connection, filters)
        except HealthCoverError as e:
            await manager.send_error(connection, str(e))
            await websocket.close(code=1008)
            return

        while True:
            data = await websocket.receive_text()
            await manager.handle_client_message(connection, data)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: view={kind}")
    except Exception as e:
        logger.error(f"WebSocket error for view {kind}: {e}")
    finally:
        await manager.disconnect(connection)
