"""Admin API router: user management and role permissions. Every mutation is audited."""

import asyncio
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends

from backoffice.api.dependencies import (
    AdminUser,
    get_audit_logger,
    get_permissions_store,
    get_user_repository,
)
from backoffice.application.exceptions import NotFoundError
from backoffice.config.settings import get_settings
from backoffice.domain.exceptions import DomainError, MissingFieldError
from backoffice.domain.schemas import (
    PasswordResetRequest,
    RolePermissionsUpdateRequest,
    RoleUpdateRequest,
    StatusUpdateRequest,
)
from backoffice.domain.validators import validate_password
from backoffice.governance.audit_logger import AuditLogger
from backoffice.infrastructure.storage.user_repository import JsonUserRepository
from backoffice.security.passwords import hash_password
from backoffice.security.permissions_store import PermissionsStore

router = APIRouter()

USER_NOT_FOUND = "User not found"


def _definitions(permissions: PermissionsStore) -> list[dict]:
    return [asdict(d) for d in permissions.list_definitions()]


@router.get("/users")
async def list_users(
    admin: AdminUser,
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
):
    """All users, newest first."""
    items = await users.list_users()
    items.sort(key=lambda u: u.created_at, reverse=True)
    return {"users": [u.to_public() for u in items]}


@router.patch("/users/{user_id}/role")
async def update_user_role(
    user_id: str,
    body: RoleUpdateRequest,
    admin: AdminUser,
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    if body.role is None:
        raise MissingFieldError("role is required")
    result = await users.update_user(user_id, role=body.role)
    if result is None:
        raise NotFoundError(USER_NOT_FOUND)
    before, after = result
    await audit.log_action(
        actor_id=admin.sub,
        target_user_id=user_id,
        action="ROLE_CHANGED",
        before={"role": before.role.value},
        after={"role": after.role.value},
    )
    return {"user": after.to_public()}


@router.patch("/users/{user_id}/status")
async def update_user_status(
    user_id: str,
    body: StatusUpdateRequest,
    admin: AdminUser,
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    if body.status is None:
        raise MissingFieldError("status is required")
    result = await users.update_user(user_id, status=body.status)
    if result is None:
        raise NotFoundError(USER_NOT_FOUND)
    before, after = result
    await audit.log_action(
        actor_id=admin.sub,
        target_user_id=user_id,
        action="STATUS_CHANGED",
        before={"status": before.status.value},
        after={"status": after.status.value},
    )
    return {"user": after.to_public()}


@router.patch("/users/{user_id}/password")
async def reset_user_password(
    user_id: str,
    body: PasswordResetRequest,
    admin: AdminUser,
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    password = validate_password(body.password)
    iterations = get_settings().password_hash_iterations
    password_hash = await asyncio.to_thread(hash_password, password, iterations)
    result = await users.update_password(user_id, password_hash)
    if result is None:
        raise NotFoundError(USER_NOT_FOUND)
    await audit.log_action(actor_id=admin.sub, target_user_id=user_id, action="PASSWORD_RESET")
    return {"user": result[1].to_public()}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: AdminUser,
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    if user_id == admin.sub:
        raise DomainError("You cannot delete your own account")
    removed = await users.delete_user(user_id)
    if removed is None:
        raise NotFoundError(USER_NOT_FOUND)
    await audit.log_action(
        actor_id=admin.sub,
        target_user_id=user_id,
        action="USER_DELETED",
        before=removed.to_public(),
    )
    return {"ok": True}


@router.get("/role-permissions")
async def get_role_permissions(
    admin: AdminUser,
    permissions: Annotated[PermissionsStore, Depends(get_permissions_store)],
):
    return {
        "roles": await permissions.get_role_permissions(),
        "definitions": _definitions(permissions),
    }


@router.put("/role-permissions")
async def update_role_permissions(
    body: RolePermissionsUpdateRequest,
    admin: AdminUser,
    permissions: Annotated[PermissionsStore, Depends(get_permissions_store)],
    audit: Annotated[AuditLogger, Depends(get_audit_logger)],
):
    """Replace the mapping. Unknown roles and permission ids are dropped, missing roles get defaults."""
    before = await permissions.get_role_permissions()
    after = await permissions.update_role_permissions(body.roles)
    await audit.log_action(
        actor_id=admin.sub,
        action="ROLE_PERMISSIONS_UPDATED",
        before={"roles": before},
        after={"roles": after},
    )
    return {"roles": after, "definitions": _definitions(permissions)}
