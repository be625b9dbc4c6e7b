"""Persisted role → permission-list overrides, normalized against the static catalogue."""

import copy
from collections.abc import Mapping
from typing import Any

from backoffice.infrastructure.storage.json_store import JsonStore
from backoffice.security.permissions import (
    ALL_PERMISSION_IDS,
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    PERMISSION_IDS,
    PermissionDefinition,
    is_known_role,
    role_bypasses_permissions,
)

RolePermissions = dict[str, list[str]]


def normalize_role_permissions(value: Any) -> RolePermissions:
    """
    Coerce arbitrary input into the canonical mapping.
    Keys are exactly the default roles; a role whose input is not a list keeps its
    default list; list entries are stringified and filtered to known permission ids.
    """
    if not isinstance(value, Mapping):
        return copy.deepcopy(DEFAULT_ROLE_PERMISSIONS)

    normalized: RolePermissions = {}
    for role, default_list in DEFAULT_ROLE_PERMISSIONS.items():
        raw_list = value.get(role)
        if not isinstance(raw_list, list):
            normalized[role] = list(default_list)
            continue
        ids = (str(item) for item in raw_list)
        normalized[role] = list(dict.fromkeys(i for i in ids if i in PERMISSION_IDS))
    return normalized


def build_role_permissions_store(path) -> JsonStore[Any]:
    return JsonStore(path, default=copy.deepcopy(DEFAULT_ROLE_PERMISSIONS))


class PermissionsStore:
    """Role permission lookups. Re-reads and re-normalizes the file on every call."""

    def __init__(self, store: JsonStore[Any]) -> None:
        self._store = store

    async def ensure(self) -> None:
        await self._store.ensure()

    def list_definitions(self) -> tuple[PermissionDefinition, ...]:
        return PERMISSION_DEFINITIONS

    async def get_role_permissions(self) -> RolePermissions:
        data = await self._store.read()
        return normalize_role_permissions(data)

    async def update_role_permissions(self, payload: Any) -> RolePermissions:
        normalized = normalize_role_permissions(payload)
        await self._store.write(normalized)
        return normalized

    async def get_role_permission_list(self, role: str) -> list[str]:
        if role_bypasses_permissions(role):
            return list(ALL_PERMISSION_IDS)
        if not is_known_role(role):
            return []
        data = await self.get_role_permissions()
        return data.get(role, [])

    async def has_permission(self, role: str, permission_id: str) -> bool:
        if role_bypasses_permissions(role):
            return True
        if not is_known_role(role):
            return False
        data = await self.get_role_permissions()
        return permission_id in data.get(role, [])
