# backoffice/api/routers/permissions.py

from typing import Annotated

from fastapi import APIRouter, Depends

from backoffice.api.dependencies import CurrentUser, get_permissions_store
from backoffice.security.permissions_store import PermissionsStore

router = APIRouter()


@router.get("")
async def my_permissions(
    user: CurrentUser,
    permissions: Annotated[PermissionsStore, Depends(get_permissions_store)],
):
    """Role of the caller and the permission ids it grants."""
    return {
        "role": user.role,
        "permissions": await permissions.get_role_permission_list(user.role),
    }
