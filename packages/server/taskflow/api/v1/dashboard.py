"""Dashboard endpoint: projects and tasks across all of the caller's orgs."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.auth import SessionUser, get_current_user
from taskflow.core.database import get_session
from taskflow.services.dashboard import get_dashboard
from taskflow_shared.schemas.dashboard import DashboardRead

router = APIRouter()


@router.get("", response_model=DashboardRead)
async def dashboard(
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await get_dashboard(user, session)
