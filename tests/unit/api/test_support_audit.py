"""Tests for support chat threads and the audit log listing."""

import pytest
from httpx import AsyncClient

from backoffice.infrastructure.storage.notification_repository import JsonNotificationRepository
from backoffice.security.permissions import UserRole


@pytest.mark.asyncio
async def test_customer_message_notifies_admins(client: AsyncClient, stores, admin, customer, auth_headers):
    r = await client.post(
        "/api/support/messages", json={"message": "Cannot upload files"}, headers=auth_headers(customer)
    )
    assert r.status_code == 201
    message = r.json()["message"]
    assert message["thread_id"] == customer.id
    assert message["recipient_role"] == "admin"

    notifications = await JsonNotificationRepository(stores.notifications).list_by_recipient(admin.id)
    assert notifications[0].type == "support.message"
    assert notifications[0].link == f"/support?thread={customer.id}"
    assert notifications[0].title == "New support message from customer"


@pytest.mark.asyncio
async def test_customer_cannot_read_other_threads(client: AsyncClient, customer, developer, auth_headers):
    await client.post("/api/support/messages", json={"message": "dev question"}, headers=auth_headers(developer))
    r = await client.get(
        "/api/support/messages", params={"thread_id": developer.id}, headers=auth_headers(customer)
    )
    assert r.status_code == 200
    assert r.json() == {"thread_id": customer.id, "messages": []}


@pytest.mark.asyncio
async def test_admin_reply_requires_thread_and_notifies_owner(
    client: AsyncClient, stores, admin, customer, auth_headers
):
    await client.post("/api/support/messages", json={"message": "Help"}, headers=auth_headers(customer))
    headers = auth_headers(admin)

    r = await client.post("/api/support/messages", json={"message": "Hi"}, headers=headers)
    assert r.status_code == 400
    r = await client.get("/api/support/messages", headers=headers)
    assert r.status_code == 400

    r = await client.post(
        "/api/support/messages", json={"thread_id": customer.id, "message": "On it"}, headers=headers
    )
    assert r.status_code == 201
    reply = r.json()["message"]
    assert reply["recipient_id"] == customer.id
    assert reply["recipient_role"] == "customer"

    thread = await client.get("/api/support/messages", params={"thread_id": customer.id}, headers=headers)
    assert [m["message"] for m in thread.json()["messages"]] == ["Help", "On it"]

    notifications = await JsonNotificationRepository(stores.notifications).list_by_recipient(customer.id)
    assert [(n.type, n.link) for n in notifications] == [("support.message", "/support")]


@pytest.mark.asyncio
async def test_thread_listing_is_admin_only(client: AsyncClient, admin, customer, auth_headers):
    await client.post("/api/support/messages", json={"message": "one"}, headers=auth_headers(customer))
    await client.post("/api/support/messages", json={"message": "two"}, headers=auth_headers(customer))

    r = await client.get("/api/support/threads", headers=auth_headers(customer))
    assert r.status_code == 403

    r = await client.get("/api/support/threads", headers=auth_headers(admin))
    threads = r.json()["threads"]
    assert len(threads) == 1
    assert threads[0]["thread_id"] == customer.id
    assert threads[0]["message_count"] == 2
    assert threads[0]["last_message"] == "two"


@pytest.mark.asyncio
async def test_empty_support_message_is_rejected(client: AsyncClient, customer, auth_headers):
    r = await client.post("/api/support/messages", json={"message": "   "}, headers=auth_headers(customer))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_audit_logs_filter_by_actor(client: AsyncClient, admin, make_user, customer, auth_headers):
    other_admin = await make_user("second_admin", role=UserRole.ADMIN)
    await client.patch(
        f"/admin/users/{customer.id}/status", json={"status": "suspended"}, headers=auth_headers(admin)
    )
    await client.patch(
        f"/admin/users/{customer.id}/status", json={"status": "active"}, headers=auth_headers(other_admin)
    )

    r = await client.get("/api/audit/logs", headers=auth_headers(admin))
    assert r.status_code == 200
    assert len(r.json()["logs"]) == 2

    r = await client.get("/api/audit/logs", params={"actor_id": other_admin.id}, headers=auth_headers(admin))
    logs = r.json()["logs"]
    assert [log["actor_id"] for log in logs] == [other_admin.id]
    assert logs[0]["after"] == {"status": "active"}

    r = await client.get("/api/audit/logs", headers=auth_headers(customer))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_reply_to_unknown_thread_is_not_found(client: AsyncClient, stores, admin, auth_headers):
    r = await client.post(
        "/api/support/messages", json={"thread_id": "nobody", "message": "Hello?"}, headers=auth_headers(admin)
    )
    assert r.status_code == 404
    assert await stores.support_messages.read() == []
