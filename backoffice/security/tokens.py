"""
Session tokens: HS256 JWTs carrying the user id (sub) and role.

Issued on register/login and stored in an HTTP-only cookie; the same token is
accepted as a Bearer header for API clients.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import jwt
from jose.exceptions import JWTError

from backoffice.security.exceptions import InvalidTokenError


@dataclass(frozen=True)
class SessionClaims:
    sub: str
    role: str


class TokenService:
    def __init__(self, secret: str, algorithm: str = "HS256", expiration_minutes: int = 60) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._expiration = timedelta(minutes=expiration_minutes)

    def issue(self, user_id: str, role: str) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": user_id,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + self._expiration).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> SessionClaims:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            raise InvalidTokenError("Invalid or expired session") from e
        sub = payload.get("sub")
        role = payload.get("role")
        if not isinstance(sub, str) or not sub or not isinstance(role, str):
            raise InvalidTokenError("Session token is missing claims")
        return SessionClaims(sub=sub, role=role)
