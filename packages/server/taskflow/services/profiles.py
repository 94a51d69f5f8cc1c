"""
Profile service — lazy profile creation, updates, and display-name lookups
used to enrich members and assignments.
"""

from __future__ import annotations

import re
import uuid
from typing import Iterable

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskflow.core.auth import SessionUser
from taskflow.core.errors import returns_result
from taskflow.models.base import utcnow
from taskflow.models.profile import Profile
from taskflow_shared.schemas.users import ProfileRead, ProfileUpdate

log = structlog.get_logger()

_NAME_SEPARATORS = re.compile(r"[._-]")


def suggested_full_name(email: str) -> str:
    """'jane.doe-smith@x.com' -> 'Jane Doe Smith'."""
    local = email.split("@", 1)[0]
    words = _NAME_SEPARATORS.sub(" ", local).split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


async def get_or_create_profile(user: SessionUser, session: AsyncSession) -> ProfileRead:
    """Return the caller's profile, creating it on first access."""
    profile = await session.get(Profile, user.id)
    if profile is None:
        profile = Profile(id=user.id, full_name=suggested_full_name(user.email))
        session.add(profile)
        await session.flush()
        log.info("profile.created", user_id=str(user.id))
    return ProfileRead.model_validate(profile)


@returns_result
async def update_profile(
    user: SessionUser, changes: ProfileUpdate, session: AsyncSession
) -> ProfileRead:
    profile = await session.get(Profile, user.id)
    if profile is None:
        profile = Profile(id=user.id, full_name=suggested_full_name(user.email))

    for key, value in changes.model_dump(exclude_unset=True).items():
        if value is None and key == "full_name":
            continue
        setattr(profile, key, value)
    profile.updated_at = utcnow()

    session.add(profile)
    await session.flush()
    log.info("profile.updated", user_id=str(user.id))
    return ProfileRead.model_validate(profile)


async def load_profiles(
    user_ids: Iterable[uuid.UUID], session: AsyncSession
) -> dict[uuid.UUID, Profile]:
    """Profiles by user id for display enrichment.

    A failed lookup degrades to an empty mapping so callers fall back to
    placeholder names instead of failing the whole view.
    """
    ids = list(set(user_ids))
    if not ids:
        return {}
    try:
        result = await session.execute(select(Profile).where(Profile.id.in_(ids)))
    except SQLAlchemyError as exc:
        log.warning("profile.lookup_failed", count=len(ids), error=str(exc))
        return {}
    return {p.id: p for p in result.scalars().all()}
