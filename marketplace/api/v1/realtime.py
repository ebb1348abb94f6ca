"""WebSocket endpoint for live notifications."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from marketplace.core.exceptions import AuthenticationError
from marketplace.core.permissions import UserRole
from marketplace.core.security import verify_token
from marketplace.services.notification_service import (
    ADMIN_CHANNEL,
    ConnectionManager,
    user_channel,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _channels_for_token(token: str | None) -> list[str]:
    if not token:
        raise AuthenticationError("Not authorized, no token")
    payload = verify_token(token, token_type="access")
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")

    channels = [user_channel(user_id)]
    if payload.get("role") == UserRole.ADMIN.value:
        channels.append(ADMIN_CHANNEL)
    return channels


@router.websocket("/ws")
async def notifications_socket(websocket: WebSocket, token: str | None = None) -> None:
    """Push channel: joins the user's own room, and the admin room for admins."""
    try:
        channels = _channels_for_token(token)
    except AuthenticationError as e:
        logger.info(f"Rejected WebSocket connection: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    manager: ConnectionManager = websocket.app.state.connection_manager
    await manager.connect(websocket, channels)
    try:
        # Client frames are not used; reading keeps the disconnect observable
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
        logger.info(f"WebSocket left channels {channels}")
