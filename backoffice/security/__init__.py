"""Security: permission catalogue and store, password hashing, session tokens. No FastAPI."""

from backoffice.security.permissions import UserRole, UserStatus
from backoffice.security.permissions_store import PermissionsStore, normalize_role_permissions
from backoffice.security.tokens import SessionClaims, TokenService

__all__ = [
    "PermissionsStore",
    "SessionClaims",
    "TokenService",
    "UserRole",
    "UserStatus",
    "normalize_role_permissions",
]
