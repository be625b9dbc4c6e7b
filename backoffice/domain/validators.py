"""Request field validators. Raise domain exceptions; the API maps them to 400."""

import re
from enum import Enum
from typing import Any, Optional, TypeVar

from pydantic import BaseModel

from backoffice.domain.exceptions import (
    DomainValidationError,
    InvalidCredentialsFormatError,
    MissingFieldError,
    UnsupportedValueError,
)

E = TypeVar("E", bound=Enum)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,20}$")
MIN_PASSWORD_LENGTH = 8


def require_text(value: Optional[str], field: str) -> str:
    """Return the stripped value, or raise MissingFieldError if it is absent or blank."""
    text = (value or "").strip()
    if not text:
        raise MissingFieldError(f"{field} is required")
    return text


def require_choice(value: Optional[str], choices: type[E], field: str) -> E:
    """Return the enum member named by value; MissingFieldError if blank, UnsupportedValueError if unknown."""
    text = require_text(value, field)
    try:
        return choices(text)
    except ValueError:
        raise UnsupportedValueError(f"Unsupported {field}: {text}") from None


def validate_password(password: Optional[str]) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidCredentialsFormatError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    return password


def validate_registration(
    username: Optional[str],
    email: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
) -> tuple[str, str, str]:
    """Validate registration input; returns (username, email, password) with names lower-cased."""
    if not username or not email or not password or not confirm_password:
        raise MissingFieldError("username, email, password and confirm_password are required")
    if not USERNAME_RE.match(username):
        raise InvalidCredentialsFormatError(
            "Username must be 3-20 letters, digits or underscores"
        )
    if not EMAIL_RE.match(email):
        raise InvalidCredentialsFormatError("Email format is invalid")
    validate_password(password)
    if password != confirm_password:
        raise InvalidCredentialsFormatError("Password and confirmation do not match")
    return username.lower(), email.lower(), password


def patch_updates(body: BaseModel, clearable: frozenset[str] = frozenset()) -> dict[str, Any]:
    """Fields present in a PATCH body. Only clearable fields accept an explicit null."""
    sent = body.model_dump(exclude_unset=True)
    for field, value in sent.items():
        if value is None and field not in clearable:
            raise DomainValidationError(f"{field} cannot be cleared")
    return sent
