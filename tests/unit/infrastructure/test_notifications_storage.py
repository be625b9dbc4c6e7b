"""Tests for the notification repository and the websocket hub."""

from unittest.mock import AsyncMock

import pytest

from backoffice.infrastructure.realtime.notification_hub import (
    EVENT_NEW,
    EVENT_UNREAD_COUNT,
    NotificationHub,
)
from backoffice.infrastructure.storage.notification_repository import JsonNotificationRepository
from backoffice.infrastructure.storage.stores import DataStores


@pytest.fixture
def repository(stores: DataStores) -> JsonNotificationRepository:
    return JsonNotificationRepository(stores.notifications)


async def _create(repository: JsonNotificationRepository, recipient_id: str, title: str = "t"):
    return await repository.create(recipient_id=recipient_id, type="test", title=title, message="m")


@pytest.mark.asyncio
async def test_list_by_recipient_is_scoped_and_newest_first(repository):
    first = await _create(repository, "u1", "first")
    second = await _create(repository, "u1", "second")
    await _create(repository, "u2")

    items = await repository.list_by_recipient("u1")
    assert [n.id for n in items] == [second.id, first.id]


@pytest.mark.asyncio
async def test_mark_read_is_idempotent_and_owner_scoped(repository):
    n = await _create(repository, "u1")
    assert await repository.mark_read("u2", n.id) is None

    read = await repository.mark_read("u1", n.id)
    assert read.read_at is not None
    again = await repository.mark_read("u1", n.id)
    assert again.read_at == read.read_at
    assert await repository.count_unread("u1") == 0


@pytest.mark.asyncio
async def test_mark_all_read_and_unread_filter(repository):
    await _create(repository, "u1")
    await _create(repository, "u1")
    await _create(repository, "u2")

    assert len(await repository.list_by_recipient("u1", unread_only=True)) == 2
    assert await repository.mark_all_read("u1") == 2
    assert await repository.list_by_recipient("u1", unread_only=True) == []
    assert await repository.count_unread("u2") == 1


def _socket() -> AsyncMock:
    socket = AsyncMock()
    socket.send_json = AsyncMock(return_value=None)
    return socket


@pytest.mark.asyncio
async def test_hub_pushes_new_notification_and_count(repository):
    hub = NotificationHub(count_unread=repository.count_unread)
    socket = _socket()
    hub.register("u1", socket)
    n = await _create(repository, "u1")

    await hub.broadcast_new(n)

    payloads = [call.args[0] for call in socket.send_json.await_args_list]
    assert payloads[0]["type"] == EVENT_NEW
    assert payloads[0]["notification"]["id"] == n.id
    assert payloads[1] == {"type": EVENT_UNREAD_COUNT, "count": 1}


@pytest.mark.asyncio
async def test_hub_skips_users_without_connections():
    count_unread = AsyncMock(return_value=3)
    hub = NotificationHub(count_unread=count_unread)
    await hub.broadcast_unread_count("nobody")
    count_unread.assert_not_awaited()


@pytest.mark.asyncio
async def test_hub_drops_failing_socket_and_keeps_others():
    hub = NotificationHub(count_unread=AsyncMock(return_value=0))
    broken = _socket()
    broken.send_json.side_effect = RuntimeError("closed")
    healthy = _socket()
    hub.register("u1", broken)
    hub.register("u1", healthy)

    await hub.broadcast_unread_count("u1")

    healthy.send_json.assert_awaited_once_with({"type": EVENT_UNREAD_COUNT, "count": 0})
    assert hub.connection_count("u1") == 1


def test_hub_unregister_removes_empty_user():
    hub = NotificationHub(count_unread=AsyncMock(return_value=0))
    socket = _socket()
    hub.register("u1", socket)
    hub.unregister("u1", socket)
    hub.unregister("u1", socket)
    assert hub.connection_count("u1") == 0
