"""User record as persisted in the users collection."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from backoffice.security.permissions import UserRole, UserStatus


class StoredUser(BaseModel):
    id: str
    username: str
    email: str
    password_hash: str
    role: UserRole = UserRole.CUSTOMER
    status: UserStatus = UserStatus.ACTIVE
    created_at: datetime
    updated_at: datetime

    def to_public(self) -> dict[str, Any]:
        """Shape exposed over the API; never includes the password hash."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }
