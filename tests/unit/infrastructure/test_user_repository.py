"""Tests for the JSON user repository and the legacy auth file migration."""

import json
import logging
from pathlib import Path

import pytest

from backoffice.application.exceptions import ConflictError
from backoffice.infrastructure.storage.json_store import JsonStore, StoreContentError
from backoffice.infrastructure.storage.stores import DataStores, init_stores
from backoffice.infrastructure.storage.user_repository import (
    EMAIL_EXISTS,
    USERNAME_EXISTS,
    JsonUserRepository,
    migrate_legacy_if_needed,
)
from backoffice.security.permissions import UserRole, UserStatus


@pytest.fixture
def users(stores: DataStores) -> JsonUserRepository:
    return JsonUserRepository(stores.users)


async def _create(users: JsonUserRepository, username: str, **kwargs):
    return await users.create_user(
        username=username, email=f"{username}@example.com", password_hash="x", **kwargs
    )


@pytest.mark.asyncio
async def test_create_user_lowercases_and_defaults(users: JsonUserRepository):
    user = await users.create_user(username="Alice_1", email="Alice@Example.com", password_hash="h")
    assert user.username == "alice_1"
    assert user.email == "alice@example.com"
    assert user.role == UserRole.CUSTOMER
    assert user.status == UserStatus.ACTIVE
    assert await users.find_by_id(user.id) == user


@pytest.mark.asyncio
async def test_create_user_conflicts(users: JsonUserRepository):
    await _create(users, "alice")
    with pytest.raises(ConflictError) as username_conflict:
        await users.create_user(username="ALICE", email="other@example.com", password_hash="h")
    assert username_conflict.value.code == USERNAME_EXISTS
    with pytest.raises(ConflictError) as email_conflict:
        await users.create_user(username="bob", email="ALICE@example.com", password_hash="h")
    assert email_conflict.value.code == EMAIL_EXISTS


@pytest.mark.asyncio
async def test_find_by_identifier_matches_username_or_email(users: JsonUserRepository):
    user = await _create(users, "carol")
    assert (await users.find_by_identifier("CAROL")).id == user.id
    assert (await users.find_by_identifier("carol@example.com")).id == user.id
    assert await users.find_by_identifier("nobody") is None


@pytest.mark.asyncio
async def test_update_user_returns_before_and_after(users: JsonUserRepository):
    user = await _create(users, "dave")
    before, after = await users.update_user(user.id, role=UserRole.DEVELOPER)
    assert before.role == UserRole.CUSTOMER
    assert after.role == UserRole.DEVELOPER
    assert after.status == UserStatus.ACTIVE
    assert (await users.find_by_id(user.id)).role == UserRole.DEVELOPER
    assert await users.update_user("missing", status=UserStatus.SUSPENDED) is None


@pytest.mark.asyncio
async def test_list_active_ids_by_role_skips_inactive(users: JsonUserRepository):
    active = await _create(users, "admin1", role=UserRole.ADMIN)
    await _create(users, "admin2", role=UserRole.ADMIN, status=UserStatus.SUSPENDED)
    await _create(users, "cust1")
    assert await users.list_active_ids_by_role(["admin"]) == [active.id]


@pytest.mark.asyncio
async def test_delete_user(users: JsonUserRepository):
    user = await _create(users, "erin")
    removed = await users.delete_user(user.id)
    assert removed.id == user.id
    assert await users.find_by_id(user.id) is None
    assert await users.delete_user(user.id) is None


def _legacy_payload() -> dict:
    """Combined auth file as the previous server wrote it: camelCase keys, Z timestamps."""
    return {
        "users": [
            {
                "id": "u1",
                "username": "legacy",
                "email": "legacy@example.com",
                "passwordHash": "$2a$10$abcdefghijklmnopqrstuv",
                "role": "admin",
                "status": "active",
                "createdAt": "2024-01-01T00:00:00.000Z",
                "updatedAt": "2024-01-01T00:00:00.000Z",
            }
        ],
        "auditLogs": [
            {
                "id": "a1",
                "actorId": "u1",
                "targetUserId": None,
                "action": "ROLE_CHANGED",
                "before": None,
                "after": {"role": "developer"},
                "createdAt": "2024-01-02T00:00:00.000Z",
            }
        ],
    }


@pytest.mark.asyncio
async def test_legacy_file_seeds_missing_split_files(stores: DataStores):
    stores.legacy_file.write_text(json.dumps(_legacy_payload()))
    await init_stores(stores)

    users = await stores.users.read()
    logs = await stores.audit_logs.read()
    assert [u.id for u in users] == ["u1"]
    assert users[0].password_hash.startswith("$2a$")
    assert users[0].role == UserRole.ADMIN
    assert users[0].created_at.year == 2024
    assert [r.id for r in logs] == ["a1"]
    assert logs[0].actor_id == "u1"
    assert logs[0].after == {"role": "developer"}


@pytest.mark.asyncio
async def test_legacy_migration_never_overwrites_existing_file(tmp_path: Path):
    legacy = tmp_path / "auth.json"
    legacy.write_text(json.dumps(_legacy_payload()))
    users_store = JsonStore(tmp_path / "users.json", default=[])
    audit_store = JsonStore(tmp_path / "audit_logs.json", default=[])
    await users_store.write([])

    await migrate_legacy_if_needed(legacy, users_store, audit_store)

    assert await users_store.read() == []
    assert len(await audit_store.read()) == 1


@pytest.mark.asyncio
async def test_legacy_migration_drops_unusable_records_with_warning(stores: DataStores, caplog):
    payload = _legacy_payload()
    payload["users"].append({"id": "u2", "username": "broken"})
    payload["auditLogs"].append("not a record")
    stores.legacy_file.write_text(json.dumps(payload))

    with caplog.at_level(logging.WARNING):
        await init_stores(stores)

    assert [u.id for u in await stores.users.read()] == ["u1"]
    assert [r.id for r in await stores.audit_logs.read()] == ["a1"]
    dropped = [r for r in caplog.records if r.getMessage() == "legacy_records_dropped"]
    assert sorted(r.collection for r in dropped) == ["audit_logs", "users"]
    assert all(r.dropped == 1 for r in dropped)


@pytest.mark.asyncio
async def test_snake_case_legacy_records_are_still_accepted(stores: DataStores):
    user = {
        "id": "u3",
        "username": "snake",
        "email": "snake@example.com",
        "password_hash": "h",
        "role": "customer",
        "status": "pending",
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-01T00:00:00+00:00",
    }
    stores.legacy_file.write_text(json.dumps({"users": [user], "audit_logs": []}))
    await init_stores(stores)

    users = await stores.users.read()
    assert [(u.id, u.status) for u in users] == [("u3", UserStatus.PENDING)]


@pytest.mark.asyncio
async def test_create_user_never_wipes_a_collection_with_a_bad_record(users: JsonUserRepository, stores: DataStores):
    await _create(users, "alice")
    records = json.loads(stores.users.path.read_text())
    records.append({"id": "x", "username": "bob"})
    stores.users.path.write_text(json.dumps(records))
    content = stores.users.path.read_text()

    with pytest.raises(StoreContentError):
        await _create(users, "carol")

    assert stores.users.path.read_text() == content
    assert [r["username"] for r in json.loads(content)] == ["alice", "bob"]


@pytest.mark.asyncio
async def test_init_stores_creates_every_collection_file(stores: DataStores):
    await init_stores(stores)
    for store in stores.all():
        assert store.path.exists()
