"""JSON-file notification repository."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from backoffice.domain.models.notification import Notification
from backoffice.infrastructure.storage.json_store import JsonStore


class JsonNotificationRepository:
    def __init__(self, store: JsonStore[list[Notification]]) -> None:
        self._store = store

    async def create(
        self,
        *,
        recipient_id: str,
        type: str,
        title: str,
        message: str,
        actor_id: Optional[str] = None,
        link: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            id=str(uuid.uuid4()),
            recipient_id=recipient_id,
            actor_id=actor_id,
            type=type,
            title=title,
            message=message,
            link=link,
            created_at=datetime.now(timezone.utc),
        )
        await self._store.update(lambda items: items.append(notification))
        return notification

    async def list_by_recipient(
        self, recipient_id: str, unread_only: bool = False
    ) -> list[Notification]:
        """Newest first."""
        items = await self._store.read()
        selected = [
            n for n in items
            if n.recipient_id == recipient_id and not (unread_only and n.is_read)
        ]
        return sorted(selected, key=lambda n: n.created_at, reverse=True)

    async def mark_read(self, recipient_id: str, notification_id: str) -> Optional[Notification]:
        """Returns the (possibly already) read notification, or None if it is not the recipient's."""

        def _mark(items: list[Notification]) -> Optional[Notification]:
            for i, n in enumerate(items):
                if n.id == notification_id and n.recipient_id == recipient_id:
                    if n.read_at is None:
                        items[i] = n.model_copy(update={"read_at": datetime.now(timezone.utc)})
                    return items[i]
            return None

        return await self._store.update(_mark)

    async def mark_all_read(self, recipient_id: str) -> int:
        now = datetime.now(timezone.utc)

        def _mark_all(items: list[Notification]) -> int:
            updated = 0
            for i, n in enumerate(items):
                if n.recipient_id == recipient_id and n.read_at is None:
                    items[i] = n.model_copy(update={"read_at": now})
                    updated += 1
            return updated

        return await self._store.update(_mark_all)

    async def count_unread(self, recipient_id: str) -> int:
        items = await self._store.read()
        return sum(1 for n in items if n.recipient_id == recipient_id and n.read_at is None)
