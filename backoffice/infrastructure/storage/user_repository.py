"""JSON-file user repository, plus the one-off split of the legacy combined auth file."""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from backoffice.application.exceptions import ConflictError
from backoffice.domain.models.user import StoredUser
from backoffice.governance.audit_models import AuditRecord
from backoffice.infrastructure.storage.json_store import JsonStore
from backoffice.infrastructure.storage.paths import file_exists
from backoffice.security.permissions import UserRole, UserStatus

logger = logging.getLogger(__name__)

USERNAME_EXISTS = "USERNAME_EXISTS"
EMAIL_EXISTS = "EMAIL_EXISTS"

_user_adapter = TypeAdapter(StoredUser)
_audit_adapter = TypeAdapter(AuditRecord)

# camelCase keys written by the original auth file
_LEGACY_KEYS = {
    "passwordHash": "password_hash",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "actorId": "actor_id",
    "targetUserId": "target_user_id",
}


class JsonUserRepository:
    """Users collection. Usernames and emails are stored lower-cased and matched case-insensitively."""

    def __init__(self, store: JsonStore[list[StoredUser]]) -> None:
        self._store = store

    async def list_users(self) -> list[StoredUser]:
        return await self._store.read()

    async def find_by_id(self, user_id: str) -> Optional[StoredUser]:
        users = await self._store.read()
        return next((u for u in users if u.id == user_id), None)

    async def find_by_identifier(self, identifier: str) -> Optional[StoredUser]:
        normalized = identifier.lower()
        users = await self._store.read()
        return next(
            (u for u in users if u.username.lower() == normalized or u.email.lower() == normalized),
            None,
        )

    async def list_active_ids_by_role(self, roles: Iterable[str]) -> list[str]:
        wanted = {str(r) for r in roles}
        users = await self._store.read()
        return [u.id for u in users if u.role.value in wanted and u.status == UserStatus.ACTIVE]

    async def create_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.CUSTOMER,
        status: UserStatus = UserStatus.ACTIVE,
    ) -> StoredUser:
        """Append a user. Raises ConflictError if the username or email is taken."""
        username_lower = username.lower()
        email_lower = email.lower()

        def _create(users: list[StoredUser]) -> StoredUser:
            if any(u.username.lower() == username_lower for u in users):
                raise ConflictError(USERNAME_EXISTS, code=USERNAME_EXISTS)
            if any(u.email.lower() == email_lower for u in users):
                raise ConflictError(EMAIL_EXISTS, code=EMAIL_EXISTS)
            now = datetime.now(timezone.utc)
            user = StoredUser(
                id=str(uuid.uuid4()),
                username=username_lower,
                email=email_lower,
                password_hash=password_hash,
                role=role,
                status=status,
                created_at=now,
                updated_at=now,
            )
            users.append(user)
            return user

        return await self._store.update(_create)

    async def _replace(
        self, user_id: str, updates: dict[str, Any]
    ) -> Optional[tuple[StoredUser, StoredUser]]:
        def _apply(users: list[StoredUser]) -> Optional[tuple[StoredUser, StoredUser]]:
            index = next((i for i, u in enumerate(users) if u.id == user_id), None)
            if index is None:
                return None
            before = users[index]
            after = before.model_copy(
                update={**updates, "updated_at": datetime.now(timezone.utc)}
            )
            users[index] = after
            return before, after

        return await self._store.update(_apply)

    async def update_user(
        self,
        user_id: str,
        *,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
    ) -> Optional[tuple[StoredUser, StoredUser]]:
        """Change role and/or status. Returns (before, after), or None if the user does not exist."""
        updates: dict[str, Any] = {}
        if role is not None:
            updates["role"] = role
        if status is not None:
            updates["status"] = status
        return await self._replace(user_id, updates)

    async def update_password(
        self, user_id: str, password_hash: str
    ) -> Optional[tuple[StoredUser, StoredUser]]:
        return await self._replace(user_id, {"password_hash": password_hash})

    async def delete_user(self, user_id: str) -> Optional[StoredUser]:
        def _delete(users: list[StoredUser]) -> Optional[StoredUser]:
            index = next((i for i, u in enumerate(users) if u.id == user_id), None)
            if index is None:
                return None
            return users.pop(index)

        return await self._store.update(_delete)


def _snake_case_keys(record: Any) -> Any:
    if not isinstance(record, dict):
        return record
    return {_LEGACY_KEYS.get(key, key): value for key, value in record.items()}


def _validate_legacy_records(raw: Any, adapter: TypeAdapter, collection: str, legacy_path: Path) -> list:
    """Validate record by record; a record that does not fit is dropped and counted."""
    records = raw if isinstance(raw, list) else []
    valid = []
    for record in records:
        try:
            valid.append(adapter.validate_python(_snake_case_keys(record)))
        except ValidationError:
            continue
    dropped = len(records) - len(valid)
    if dropped:
        logger.warning(
            "legacy_records_dropped",
            extra={"collection": collection, "dropped": dropped, "legacy_path": str(legacy_path)},
        )
    return valid


def _load_legacy(legacy_path: Path) -> tuple[list[StoredUser], list[AuditRecord]]:
    """
    Parse {users, auditLogs} from the legacy file. Both camelCase and snake_case
    record keys are accepted. An unreadable file yields two empty lists.
    """
    try:
        parsed = json.loads(legacy_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("legacy_store_unreadable", extra={"legacy_path": str(legacy_path)})
        return [], []
    if not isinstance(parsed, dict):
        return [], []
    users = _validate_legacy_records(parsed.get("users"), _user_adapter, "users", legacy_path)
    raw_logs = parsed.get("auditLogs", parsed.get("audit_logs"))
    logs = _validate_legacy_records(raw_logs, _audit_adapter, "audit_logs", legacy_path)
    return users, logs


async def migrate_legacy_if_needed(
    legacy_path: Path,
    users_store: JsonStore[list[StoredUser]],
    audit_store: JsonStore[list[AuditRecord]],
) -> None:
    """
    Seed missing users/audit files from the legacy combined file, then ensure both exist.
    Existing split files are never overwritten.
    """
    users_exists = await asyncio.to_thread(file_exists, users_store.path)
    audit_exists = await asyncio.to_thread(file_exists, audit_store.path)
    legacy_exists = await asyncio.to_thread(file_exists, legacy_path)

    if legacy_exists and not (users_exists and audit_exists):
        users, logs = await asyncio.to_thread(_load_legacy, legacy_path)
        if not users_exists:
            await users_store.write(users)
        if not audit_exists:
            await audit_store.write(logs)
        logger.info(
            "legacy_store_migrated",
            extra={"users": len(users), "audit_logs": len(logs), "legacy_path": str(legacy_path)},
        )

    await users_store.ensure()
    await audit_store.ensure()
