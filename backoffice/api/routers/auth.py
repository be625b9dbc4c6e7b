"""Auth API router: register, login, logout, current session."""

import asyncio
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Response

from backoffice.api.dependencies import get_optional_user, get_token_service, get_user_repository
from backoffice.application.exceptions import ConflictError
from backoffice.config.settings import get_settings
from backoffice.domain.exceptions import MissingFieldError
from backoffice.domain.models.user import StoredUser
from backoffice.domain.schemas import LoginRequest, RegisterRequest
from backoffice.domain.validators import require_text, validate_registration
from backoffice.infrastructure.storage.user_repository import USERNAME_EXISTS, JsonUserRepository
from backoffice.security.exceptions import AuthenticationError, AuthorizationError
from backoffice.security.passwords import hash_password, verify_password
from backoffice.security.permissions import UserStatus
from backoffice.security.tokens import SessionClaims, TokenService

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.jwt_expiration_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def _start_session(response: Response, tokens: TokenService, user: StoredUser) -> None:
    _set_session_cookie(response, tokens.issue(user.id, user.role.value))


@router.post("/register", status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
):
    """Create a customer account and sign it in."""
    username, email, password = validate_registration(
        body.username, body.email, body.password, body.confirm_password
    )
    iterations = get_settings().password_hash_iterations
    password_hash = await asyncio.to_thread(hash_password, password, iterations)
    try:
        user = await users.create_user(username=username, email=email, password_hash=password_hash)
    except ConflictError as e:
        if e.code == USERNAME_EXISTS:
            raise ConflictError("Username is already taken", code=e.code) from e
        raise ConflictError("Email is already registered", code=e.code) from e

    _start_session(response, tokens, user)
    logger.info("user_registered", extra={"registered_user_id": user.id})
    return {"user": user.to_public()}


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
):
    """Sign in with username or email. 401 on bad credentials, 403 if the account is not active."""
    identifier = require_text(body.identifier, "identifier")
    password = body.password
    if not password:
        raise MissingFieldError("password is required")

    user = await users.find_by_identifier(identifier)
    if user is None or not await asyncio.to_thread(verify_password, password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    if user.status != UserStatus.ACTIVE:
        raise AuthorizationError("Account is not active")

    _start_session(response, tokens, user)
    return {"user": user.to_public()}


@router.post("/logout")
async def logout(response: Response):
    settings = get_settings()
    response.delete_cookie(key=settings.session_cookie_name, path="/")
    return {"ok": True}


@router.get("/me")
async def me(
    claims: Annotated[Optional[SessionClaims], Depends(get_optional_user)],
    users: Annotated[JsonUserRepository, Depends(get_user_repository)],
):
    """Current user, or {"user": null} when not signed in."""
    if claims is None:
        return {"user": None}
    user = await users.find_by_id(claims.sub)
    return {"user": user.to_public() if user else None}
