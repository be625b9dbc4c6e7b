"""Fixtures for API unit tests: stores in tmp_path, fresh hub, AsyncClient, user factory."""

from typing import Awaitable, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from backoffice.api import dependencies
from backoffice.domain.models.user import StoredUser
from backoffice.infrastructure.realtime.notification_hub import NotificationHub
from backoffice.infrastructure.storage.notification_repository import JsonNotificationRepository
from backoffice.infrastructure.storage.stores import DataStores
from backoffice.infrastructure.storage.user_repository import JsonUserRepository
from backoffice.main import app
from backoffice.security.passwords import hash_password
from backoffice.security.permissions import UserRole, UserStatus

TEST_PASSWORD = "password123"


@pytest.fixture
def hub(stores: DataStores) -> NotificationHub:
    return NotificationHub(count_unread=JsonNotificationRepository(stores.notifications).count_unread)


@pytest.fixture
def app_with_overrides(stores: DataStores, hub: NotificationHub):
    """App with stores and hub overridden for testing."""
    app.dependency_overrides[dependencies.get_stores] = lambda: stores
    app.dependency_overrides[dependencies.get_hub] = lambda: hub
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app_with_overrides):
    """Async HTTP client for testing; uses overridden app."""
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def user_repository(stores: DataStores) -> JsonUserRepository:
    return JsonUserRepository(stores.users)


@pytest.fixture
def make_user(user_repository: JsonUserRepository) -> Callable[..., Awaitable[StoredUser]]:
    async def _make(
        username: str,
        role: UserRole = UserRole.CUSTOMER,
        status: UserStatus = UserStatus.ACTIVE,
        password: str = TEST_PASSWORD,
    ) -> StoredUser:
        return await user_repository.create_user(
            username=username,
            email=f"{username}@example.com",
            password_hash=hash_password(password, iterations=1000),
            role=role,
            status=status,
        )

    return _make


@pytest.fixture
def auth_headers() -> Callable[[StoredUser], dict[str, str]]:
    """Bearer header carrying a session token for the given user."""

    def _headers(user: StoredUser) -> dict[str, str]:
        token = dependencies.get_token_service().issue(user.id, user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def admin(make_user) -> StoredUser:
    return await make_user("admin", role=UserRole.ADMIN)


@pytest.fixture
async def developer(make_user) -> StoredUser:
    return await make_user("developer", role=UserRole.DEVELOPER)


@pytest.fixture
async def customer(make_user) -> StoredUser:
    return await make_user("customer")
