"""In-process registry of notification websockets, keyed by user id."""

import logging
from typing import Any, Awaitable, Callable, Protocol

from backoffice.domain.models.notification import Notification

logger = logging.getLogger(__name__)

EVENT_NEW = "notifications.new"
EVENT_UNREAD_COUNT = "notifications.unread_count"


class JsonSocket(Protocol):
    async def send_json(self, data: Any) -> None: ...


class NotificationHub:
    """
    Pushes notification events to every open socket of a user.
    A socket whose send fails is dropped; delivery to the others continues.
    """

    def __init__(self, count_unread: Callable[[str], Awaitable[int]]) -> None:
        self._count_unread = count_unread
        self._connections: dict[str, set[JsonSocket]] = {}

    def register(self, user_id: str, socket: JsonSocket) -> None:
        self._connections.setdefault(user_id, set()).add(socket)

    def unregister(self, user_id: str, socket: JsonSocket) -> None:
        sockets = self._connections.get(user_id)
        if not sockets:
            return
        sockets.discard(socket)
        if not sockets:
            del self._connections[user_id]

    def connection_count(self, user_id: str) -> int:
        return len(self._connections.get(user_id, ()))

    async def _send(self, user_id: str, payload: dict[str, Any]) -> None:
        for socket in list(self._connections.get(user_id, ())):
            try:
                await socket.send_json(payload)
            except Exception as e:
                logger.warning(
                    "notification_socket_dropped",
                    extra={"recipient_id": user_id, "error": str(e)},
                )
                self.unregister(user_id, socket)

    async def broadcast_unread_count(self, user_id: str) -> None:
        if not self.connection_count(user_id):
            return
        count = await self._count_unread(user_id)
        await self._send(user_id, {"type": EVENT_UNREAD_COUNT, "count": count})

    async def broadcast_new(self, notification: Notification) -> None:
        recipient = notification.recipient_id
        if not self.connection_count(recipient):
            return
        await self._send(
            recipient,
            {"type": EVENT_NEW, "notification": notification.model_dump(mode="json")},
        )
        await self.broadcast_unread_count(recipient)
