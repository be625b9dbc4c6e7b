"""Notifications API router: inbox, read state, and the realtime websocket."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from backoffice.api.dependencies import (
    CurrentUser,
    get_hub,
    get_notification_repository,
    get_token_service,
    get_user_repository,
    resolve_session,
)
from backoffice.application.exceptions import NotFoundError
from backoffice.infrastructure.realtime.notification_hub import NotificationHub
from backoffice.infrastructure.storage.notification_repository import JsonNotificationRepository
from backoffice.infrastructure.storage.user_repository import JsonUserRepository
from backoffice.security.exceptions import AuthenticationError
from backoffice.security.tokens import TokenService

logger = logging.getLogger(__name__)

router = APIRouter()

# Application close code for a missing or invalid session.
WS_CLOSE_UNAUTHORIZED = 4401


@router.get("")
async def list_notifications(
    user: CurrentUser,
    repository: Annotated[JsonNotificationRepository, Depends(get_notification_repository)],
    unread_only: Annotated[bool, Query()] = False,
):
    items = await repository.list_by_recipient(user.sub, unread_only=unread_only)
    return {"notifications": [n.model_dump(mode="json") for n in items]}


@router.get("/unread-count")
async def unread_count(
    user: CurrentUser,
    repository: Annotated[JsonNotificationRepository, Depends(get_notification_repository)],
):
    return {"count": await repository.count_unread(user.sub)}


@router.post("/read-all")
async def mark_all_read(
    user: CurrentUser,
    repository: Annotated[JsonNotificationRepository, Depends(get_notification_repository)],
    hub: Annotated[NotificationHub, Depends(get_hub)],
):
    updated = await repository.mark_all_read(user.sub)
    await hub.broadcast_unread_count(user.sub)
    return {"updated": updated}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user: CurrentUser,
    repository: Annotated[JsonNotificationRepository, Depends(get_notification_repository)],
    hub: Annotated[NotificationHub, Depends(get_hub)],
):
    """Idempotent. Another user's notification is reported as not found."""
    notification = await repository.mark_read(user.sub, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    await hub.broadcast_unread_count(user.sub)
    return {"notification": notification.model_dump(mode="json")}


@router.websocket("/ws")
async def notifications_socket(
    websocket: WebSocket,
    tokens: Annotated[TokenService, Depends(get_token_service)],
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
    hub: Annotated[NotificationHub, Depends(get_hub)],
):
    """Push channel: sends the unread count on connect, then new notifications as they are created."""
    try:
        claims = await resolve_session(websocket, tokens, users)
    except AuthenticationError:
        claims = None
    if claims is None:
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED)
        return

    await websocket.accept()
    hub.register(claims.sub, websocket)
    try:
        await hub.broadcast_unread_count(claims.sub)
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("notification_socket_closed", extra={"recipient_id": claims.sub})
    finally:
        hub.unregister(claims.sub, websocket)
