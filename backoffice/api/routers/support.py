"""
Support chat API router.

A thread belongs to one non-admin user and its id is that user's id. Users post to
their own thread and every active admin is notified; an admin replies to a chosen
thread and its owner is notified.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from backoffice.api.dependencies import (
    AdminUser,
    CurrentUser,
    get_notification_service,
    get_platform_service,
    get_user_repository,
)
from backoffice.application.exceptions import NotFoundError
from backoffice.application.notification_service import NotificationService
from backoffice.application.platform_service import PlatformService
from backoffice.domain.schemas import SupportMessageRequest
from backoffice.domain.validators import require_text
from backoffice.infrastructure.storage.user_repository import JsonUserRepository
from backoffice.security.permissions import UserRole
from backoffice.security.tokens import SessionClaims

router = APIRouter()


def _is_admin(user: SessionClaims) -> bool:
    return user.role == UserRole.ADMIN.value


def _thread_for(user: SessionClaims, requested: Optional[str]) -> str:
    """Admins address any thread explicitly; everyone else only has their own."""
    if _is_admin(user):
        return require_text(requested, "thread_id")
    return user.sub


@router.get("/threads")
async def list_threads(
    admin: AdminUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
):
    return {"threads": await platform.list_support_threads()}


@router.get("/messages")
async def list_messages(
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    thread_id: Annotated[Optional[str], Query()] = None,
):
    thread = _thread_for(user, thread_id)
    items = await platform.list_support_messages(thread)
    return {"thread_id": thread, "messages": [m.model_dump(mode="json") for m in items]}


@router.post("/messages", status_code=201)
async def post_message(
    body: SupportMessageRequest,
    user: CurrentUser,
    platform: Annotated[PlatformService, Depends(get_platform_service)],
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
    notifications: Annotated[NotificationService, Depends(get_notification_service)],
):
    text = require_text(body.message, "message")
    thread = _thread_for(user, body.thread_id)

    if _is_admin(user):
        owner = await users.find_by_id(thread)
        if owner is None:
            raise NotFoundError("Thread not found")
        created = await platform.create_support_message(
            thread_id=thread,
            sender_id=user.sub,
            sender_role=user.role,
            recipient_id=thread,
            recipient_role=owner.role.value,
            message=text,
        )
        await notifications.try_notify_users(
            recipient_ids=[thread],
            actor_id=user.sub,
            type="support.message",
            title="Support replied",
            message=f"Support replied: {text}",
            link="/support",
        )
    else:
        created = await platform.create_support_message(
            thread_id=thread,
            sender_id=user.sub,
            sender_role=user.role,
            recipient_role=UserRole.ADMIN.value,
            message=text,
        )
        sender = await users.find_by_id(user.sub)
        label = sender.username if sender else user.role
        admins = await notifications.list_active_user_ids_by_role([UserRole.ADMIN.value])
        await notifications.try_notify_users(
            recipient_ids=admins,
            actor_id=user.sub,
            type="support.message",
            title=f"New support message from {label}",
            message=f"{label}: {text}",
            link=f"/support?thread={thread}",
        )

    return {"message": created.model_dump(mode="json")}
