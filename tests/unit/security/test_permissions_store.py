"""Security tests: permission registry, normalization, and role permission lookups."""

from unittest.mock import AsyncMock

import pytest

from backoffice.infrastructure.storage.stores import DataStores
from backoffice.security.permissions import (
    ALL_PERMISSION_IDS,
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    PERMISSION_IDS,
    role_bypasses_permissions,
)
from backoffice.security.permissions_store import PermissionsStore, normalize_role_permissions


@pytest.fixture
def permissions(stores: DataStores) -> PermissionsStore:
    return PermissionsStore(stores.role_permissions)


def test_registry_has_fourteen_unique_permissions():
    assert len(PERMISSION_DEFINITIONS) == 14
    assert len(PERMISSION_IDS) == 14
    assert DEFAULT_ROLE_PERMISSIONS["admin"] == ALL_PERMISSION_IDS


def test_only_admin_bypasses():
    assert role_bypasses_permissions("admin")
    assert not role_bypasses_permissions("developer")
    assert not role_bypasses_permissions("customer")
    assert not role_bypasses_permissions("Admin")


@pytest.mark.parametrize(
    "raw",
    [
        None,
        [],
        "text",
        {},
        {"customer": "not-a-list", "ghost": ["requirements.create"]},
        {"developer": ["projects.tasks.manage", "bogus", 42, "projects.tasks.manage"]},
    ],
)
def test_normalize_keys_and_values(raw):
    normalized = normalize_role_permissions(raw)
    assert set(normalized) == set(DEFAULT_ROLE_PERMISSIONS)
    for ids in normalized.values():
        assert set(ids) <= PERMISSION_IDS
        assert len(ids) == len(set(ids))


def test_normalize_non_mapping_returns_defaults_copy():
    normalized = normalize_role_permissions(["customer"])
    assert normalized == DEFAULT_ROLE_PERMISSIONS
    normalized["customer"].append("x")
    assert "x" not in DEFAULT_ROLE_PERMISSIONS["customer"]


def test_normalize_filters_and_dedupes_in_order():
    normalized = normalize_role_permissions(
        {"developer": ["projects.tasks.manage", "bogus", "quality.reports.view", "projects.tasks.manage"]}
    )
    assert normalized["developer"] == ["projects.tasks.manage", "quality.reports.view"]


@pytest.mark.asyncio
async def test_update_replaces_only_given_role(permissions: PermissionsStore):
    result = await permissions.update_role_permissions({"developer": ["projects.tasks.manage"]})
    assert result["developer"] == ["projects.tasks.manage"]
    assert result["customer"] == DEFAULT_ROLE_PERMISSIONS["customer"]
    assert result["admin"] == DEFAULT_ROLE_PERMISSIONS["admin"]
    assert await permissions.get_role_permissions() == result


@pytest.mark.asyncio
async def test_has_permission_follows_stored_mapping(permissions: PermissionsStore):
    assert await permissions.has_permission("developer", "projects.tasks.manage")
    await permissions.update_role_permissions({"developer": []})
    assert not await permissions.has_permission("developer", "projects.tasks.manage")
    assert not await permissions.has_permission("customer", "projects.tasks.manage")


@pytest.mark.asyncio
async def test_admin_has_every_permission_even_unknown(permissions: PermissionsStore):
    await permissions.update_role_permissions({"admin": []})
    assert await permissions.has_permission("admin", "quality.reports.view")
    assert await permissions.has_permission("admin", "not.in.registry")
    assert await permissions.get_role_permission_list("admin") == ALL_PERMISSION_IDS


@pytest.mark.asyncio
async def test_unknown_role_denied_without_storage_access():
    store = AsyncMock()
    permissions = PermissionsStore(store)
    assert await permissions.has_permission("guest", "requirements.create") is False
    assert await permissions.get_role_permission_list("guest") == []
    store.read.assert_not_awaited()


@pytest.mark.asyncio
async def test_malformed_file_falls_back_to_defaults(permissions: PermissionsStore, stores: DataStores):
    await permissions.ensure()
    stores.role_permissions.path.write_text("{broken")
    assert await permissions.get_role_permissions() == DEFAULT_ROLE_PERMISSIONS
