"""
Authentication endpoints.

- Email/Password registration & login
- JWT session management (logout revokes the token id)
- ``/me`` for clients checking whether a session is still live
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskflow.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    SessionUser,
    create_jwt,
    generate_csrf_token,
    get_current_user,
    get_optional_user,
    hash_password,
    normalize_email,
    revoke_jwt,
    verify_password,
)
from taskflow.core.config import get_settings
from taskflow.core.database import get_session
from taskflow.models.base import utcnow
from taskflow.models.profile import Profile
from taskflow.models.user import User
from taskflow.services.profiles import suggested_full_name
from taskflow_shared.schemas.users import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    RegisterRequest,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


def _issue_session(response: Response, user: User) -> AuthResponse:
    token, _jti = create_jwt(user.id)
    _set_session_cookies(response, token, generate_csrf_token())
    return AuthResponse(user_id=user.id, email=user.email, access_token=token)


# ---------------------------------------------------------------------------
# Email/Password
# ---------------------------------------------------------------------------

@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Register a new user with email/password and start a session."""
    email = normalize_email(body.email)
    result = await session.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(body.password),
        last_sign_in_at=utcnow(),
    )
    session.add(user)
    await session.flush()

    full_name = (body.full_name or "").strip() or suggested_full_name(email)
    session.add(Profile(id=user.id, full_name=full_name))
    await session.flush()

    log.info("user.registered", user_id=str(user.id), email=email)
    return _issue_session(response, user)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with email/password and receive a JWT session."""
    email = normalize_email(body.email)
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not user.password_hash:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", email=email, reason="bad_password")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user.last_sign_in_at = utcnow()
    session.add(user)
    await session.flush()

    log.info("auth.login_success", user_id=str(user.id), email=email)
    return _issue_session(response, user)


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.post("/logout")
async def logout(
    response: Response,
    user: SessionUser | None = Depends(get_optional_user),
):
    """Invalidate the current session."""
    if user is not None and user.jti:
        await revoke_jwt(user.jti)
        log.info("auth.logout", user_id=str(user.id))

    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}


@router.get("/me", response_model=CurrentUserResponse)
async def me(user: SessionUser = Depends(get_current_user)):
    return CurrentUserResponse(id=user.id, email=user.email)
