"""Notification fan-out: one persisted notification per recipient, then a realtime push."""

import asyncio
import logging
from typing import Iterable, Mapping, Optional, Protocol

from backoffice.domain.models.notification import Notification
from backoffice.domain.models.user import StoredUser
from backoffice.infrastructure.realtime.notification_hub import NotificationHub


class NotificationRepository(Protocol):
    async def create(
        self,
        *,
        recipient_id: str,
        type: str,
        title: str,
        message: str,
        actor_id: Optional[str] = None,
        link: Optional[str] = None,
    ) -> Notification: ...


class UserDirectory(Protocol):
    async def list_users(self) -> list[StoredUser]: ...

    async def list_active_ids_by_role(self, roles: Iterable[str]) -> list[str]: ...


def unique_recipients(recipient_ids: Iterable[str], actor_id: Optional[str]) -> list[str]:
    """Deduplicate in first-seen order, dropping empty ids and the acting user."""
    return [rid for rid in dict.fromkeys(recipient_ids) if rid and rid != actor_id]


class NotificationService:
    """
    Fan-out of a single event to many users. No HTTP.
    Creation is concurrent and all-or-nothing from the caller's view: if any single
    creation fails the call raises, though records already written stay written.
    """

    def __init__(
        self,
        repository: NotificationRepository,
        users: UserDirectory,
        hub: Optional[NotificationHub] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._repository = repository
        self._users = users
        self._hub = hub
        self._logger = logger or logging.getLogger(__name__)

    async def list_active_user_ids_by_role(self, roles: Iterable[str]) -> list[str]:
        return await self._users.list_active_ids_by_role(roles)

    async def notify_users(
        self,
        *,
        recipient_ids: Iterable[str],
        type: str,
        title: str,
        message: str,
        actor_id: Optional[str] = None,
        link: Optional[str] = None,
        link_by_role: Optional[Mapping[str, str]] = None,
    ) -> list[Notification]:
        recipients = unique_recipients(recipient_ids, actor_id)
        if not recipients:
            return []

        role_by_user: dict[str, str] = {}
        if link_by_role:
            users = await self._users.list_users()
            role_by_user = {u.id: u.role.value for u in users}

        def _link_for(recipient_id: str) -> Optional[str]:
            role = role_by_user.get(recipient_id)
            if role and link_by_role and role in link_by_role:
                return link_by_role[role]
            return link

        notifications = await asyncio.gather(
            *(
                self._repository.create(
                    recipient_id=rid,
                    actor_id=actor_id,
                    type=type,
                    title=title,
                    message=message,
                    link=_link_for(rid),
                )
                for rid in recipients
            )
        )
        self._logger.info(
            "notifications_created",
            extra={"notification_type": type, "recipients": len(notifications)},
        )

        if self._hub is not None:
            for notification in notifications:
                try:
                    await self._hub.broadcast_new(notification)
                except Exception as e:
                    self._logger.error(
                        "notification_broadcast_failed",
                        extra={"notification_id": notification.id, "error": str(e)},
                    )
        return list(notifications)

    async def try_notify_users(self, **kwargs) -> list[Notification]:
        """notify_users for side-channel callers: a failure is logged and yields []."""
        try:
            return await self.notify_users(**kwargs)
        except Exception as e:
            self._logger.error(
                "notifications_failed",
                extra={"notification_type": kwargs.get("type"), "error": str(e)},
                exc_info=True,
            )
            return []
