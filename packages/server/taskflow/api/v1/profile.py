"""Profile endpoints for the signed-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.auth import SessionUser, get_current_user
from taskflow.core.database import get_session
from taskflow.core.errors import unwrap
from taskflow.services import profiles as profile_service
from taskflow_shared.schemas.users import ProfileRead, ProfileUpdate

router = APIRouter()


@router.get("", response_model=ProfileRead)
async def get_profile(
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """The caller's profile, created on first access."""
    return await profile_service.get_or_create_profile(user, session)


@router.patch("", response_model=ProfileRead)
async def update_profile(
    body: ProfileUpdate,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await profile_service.update_profile(user, body, session))
