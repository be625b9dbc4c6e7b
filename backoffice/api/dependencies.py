"""FastAPI dependency injection: stores, repositories, services, session, permission guards."""

import logging
from typing import Annotated, Callable, Optional

from fastapi import Depends, Request
from starlette.requests import HTTPConnection

from backoffice.application.notification_service import NotificationService
from backoffice.application.platform_service import PlatformService
from backoffice.config.settings import get_settings
from backoffice.core.context import user_id_ctx
from backoffice.governance.audit_logger import AuditLogger
from backoffice.infrastructure.realtime.notification_hub import NotificationHub
from backoffice.infrastructure.storage.audit_repository_json import JsonAuditRepository
from backoffice.infrastructure.storage.notification_repository import JsonNotificationRepository
from backoffice.infrastructure.storage.stores import DataStores, build_stores
from backoffice.infrastructure.storage.user_repository import JsonUserRepository
from backoffice.security.exceptions import AuthenticationError, AuthorizationError
from backoffice.security.permissions import UserRole, UserStatus
from backoffice.security.permissions_store import PermissionsStore
from backoffice.security.tokens import SessionClaims, TokenService

BEARER_PREFIX = "bearer "

_stores: DataStores | None = None
_hub: NotificationHub | None = None
_token_service: TokenService | None = None


def get_stores() -> DataStores:
    """Return singleton data stores built from settings."""
    global _stores
    if _stores is None:
        _stores = build_stores(get_settings())
    return _stores


def get_token_service() -> TokenService:
    """Return singleton session token service."""
    global _token_service
    if _token_service is None:
        settings = get_settings()
        _token_service = TokenService(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expiration_minutes=settings.jwt_expiration_minutes,
        )
    return _token_service


def get_user_repository(
    stores: Annotated[DataStores, Depends(get_stores)],
) -> JsonUserRepository:
    return JsonUserRepository(stores.users)


def get_notification_repository(
    stores: Annotated[DataStores, Depends(get_stores)],
) -> JsonNotificationRepository:
    return JsonNotificationRepository(stores.notifications)


def get_hub() -> NotificationHub:
    """Return the process-wide notification hub, bound to the singleton notification store."""
    global _hub
    if _hub is None:
        _hub = NotificationHub(
            count_unread=JsonNotificationRepository(get_stores().notifications).count_unread
        )
    return _hub


def get_permissions_store(
    stores: Annotated[DataStores, Depends(get_stores)],
) -> PermissionsStore:
    return PermissionsStore(stores.role_permissions)


def get_audit_logger(
    stores: Annotated[DataStores, Depends(get_stores)],
) -> AuditLogger:
    return AuditLogger(repository=JsonAuditRepository(stores.audit_logs))


def get_audit_repository(
    stores: Annotated[DataStores, Depends(get_stores)],
) -> JsonAuditRepository:
    return JsonAuditRepository(stores.audit_logs)


def get_notification_service(
    repository: Annotated[JsonNotificationRepository, Depends(get_notification_repository)],
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
    hub: Annotated[NotificationHub, Depends(get_hub)],
) -> NotificationService:
    return NotificationService(
        repository=repository,
        users=users,
        hub=hub,
        logger=logging.getLogger("backoffice.notifications"),
    )


def get_platform_service(
    stores: Annotated[DataStores, Depends(get_stores)],
) -> PlatformService:
    return PlatformService(stores=stores, logger=logging.getLogger("backoffice.platform"))


def extract_session_token(connection: HTTPConnection) -> Optional[str]:
    """An Authorization: Bearer header wins over the session cookie."""
    header = connection.headers.get("Authorization", "")
    if header.lower().startswith(BEARER_PREFIX):
        token = header[len(BEARER_PREFIX):].strip()
        if token:
            return token
    return connection.cookies.get(get_settings().session_cookie_name) or None


async def resolve_session(
    connection: HTTPConnection,
    tokens: TokenService,
    users: JsonUserRepository,
) -> Optional[SessionClaims]:
    """
    Verify the session token and re-check the stored user: the role comes from storage,
    so a role change takes effect on the next request. Suspended or deleted users have no session.
    """
    token = extract_session_token(connection)
    if not token:
        return None
    claims = tokens.verify(token)
    user = await users.find_by_id(claims.sub)
    if user is None or user.status != UserStatus.ACTIVE:
        raise AuthenticationError("Session is no longer valid")
    return SessionClaims(sub=user.id, role=user.role.value)


async def get_optional_user(
    request: Request,
    tokens: Annotated[TokenService, Depends(get_token_service)],
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
) -> Optional[SessionClaims]:
    """Session of the caller, or None when no valid session is presented."""
    try:
        claims = await resolve_session(request, tokens, users)
    except AuthenticationError:
        return None
    if claims is not None:
        request.state.user_id = claims.sub
        user_id_ctx.set(claims.sub)
    return claims


async def get_current_user(
    claims: Annotated[Optional[SessionClaims], Depends(get_optional_user)],
) -> SessionClaims:
    if claims is None:
        raise AuthenticationError("Not authenticated")
    return claims


async def require_admin(
    claims: Annotated[SessionClaims, Depends(get_current_user)],
) -> SessionClaims:
    if claims.role != UserRole.ADMIN.value:
        raise AuthorizationError("Admin role required")
    return claims


def require_permission(permission_id: str) -> Callable:
    """Dependency factory: the caller's role must grant permission_id (admins always pass)."""

    async def _guard(
        claims: Annotated[SessionClaims, Depends(get_current_user)],
        permissions: Annotated[PermissionsStore, Depends(get_permissions_store)],
    ) -> SessionClaims:
        if not await permissions.has_permission(claims.role, permission_id):
            raise AuthorizationError(f"Missing permission: {permission_id}")
        return claims

    return _guard


def get_correlation_id(request: Request) -> str:
    """Extract correlation_id from request.state (set by middleware)."""
    return getattr(request.state, "correlation_id", "") or ""


CurrentUser = Annotated[SessionClaims, Depends(get_current_user)]
AdminUser = Annotated[SessionClaims, Depends(require_admin)]
