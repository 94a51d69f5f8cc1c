"""
Authentication and request-scoped authorization context.

Supports:
- Email/Password identities with bcrypt hashes
- JWT sessions (cookie or Bearer header) with a Redis revocation list
- ``get_optional_user`` / ``get_current_user`` dependencies: the current
  user, or None / 401 when unauthenticated
- ``MemberContext``: the caller's membership in one organization, read
  from the store per request and handed to the services
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskflow.core.config import get_settings
from taskflow.core.database import get_session
from taskflow.core.redis import get_redis
from taskflow.core.policy import as_role, can_view_organization
from taskflow.models.membership import Membership
from taskflow.models.organization import Organization
from taskflow.models.user import User
from taskflow_shared.schemas.common import Role

log = structlog.get_logger()
settings = get_settings()

SESSION_COOKIE = "tf_session"
CSRF_COOKIE = "tf_csrf"

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti).

    Roles are deliberately absent: they are read from the store per request.
    """
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int | None = None) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    await redis.setex(f"jwt:revoked:{jti}", ttl_seconds or settings.jwt_expire_minutes * 60, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"jwt:revoked:{jti}") > 0


def generate_csrf_token() -> str:
    return secrets.token_urlsafe(32)


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionUser:
    """The authenticated caller. Plain values so it outlives any ORM session state."""

    id: uuid.UUID
    email: str
    jti: Optional[str] = None


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip()
    return request.cookies.get(SESSION_COOKIE)


async def get_optional_user(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    session: AsyncSession = Depends(get_session),
) -> Optional[SessionUser]:
    """Resolve the current user, or None when unauthenticated."""
    token = _extract_token(request, authorization)
    if not token:
        return None

    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        return None

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        return None

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        return None

    user = await session.get(User, user_id)
    if not user:
        return None
    return SessionUser(id=user.id, email=user.email, jti=jti)


async def get_current_user(
    user: Optional[SessionUser] = Depends(get_optional_user),
) -> SessionUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


# ---------------------------------------------------------------------------
# Organization context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MemberContext:
    """The caller's standing in one organization, read fresh for this request."""

    user_id: uuid.UUID
    email: str
    org_id: uuid.UUID
    org_name: str
    role: Role


async def resolve_member_context(
    session: AsyncSession,
    user: SessionUser,
    org_id: uuid.UUID,
) -> Optional[MemberContext]:
    """Look up the user's membership in an org. None if org or membership is absent."""
    result = await session.execute(
        select(Organization, Membership.role)
        .join(Membership, Membership.organization_id == Organization.id)
        .where(Organization.id == org_id, Membership.user_id == user.id)
    )
    row = result.one_or_none()
    if row is None:
        return None
    org, role = row
    if not can_view_organization(role):
        log.warning("membership.unknown_role", org_id=str(org_id), user_id=str(user.id))
        return None
    return MemberContext(
        user_id=user.id,
        email=user.email,
        org_id=org.id,
        org_name=org.name,
        role=as_role(role),
    )


async def require_member(
    org_id: uuid.UUID,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MemberContext:
    """Any org member can access this endpoint. Non-members get 404, not 403."""
    ctx = await resolve_member_context(session, user, org_id)
    if ctx is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return ctx
