"""
Project endpoints.

Projects are created and listed under their org; single-project routes
resolve the org from the project itself.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.auth import MemberContext, SessionUser, get_current_user, require_member
from taskflow.core.database import get_session
from taskflow.core.errors import unwrap
from taskflow.services import projects as project_service
from taskflow_shared.schemas.projects import ProjectCreate, ProjectRead

# Mounted under /orgs/{org_id}/projects
router_scoped = APIRouter()

# Mounted under /projects
router = APIRouter()


@router_scoped.get("", response_model=List[ProjectRead])
async def list_projects(
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await project_service.list_org_projects(ctx, session)


@router_scoped.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreate,
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Create a project (Owner/Admin)."""
    return unwrap(await project_service.create_project(ctx, body, session))


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: uuid.UUID,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await project_service.get_project(project_id, user, session)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: uuid.UUID,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Delete a project and its tasks (Owner/Admin)."""
    unwrap(await project_service.delete_project(project_id, user, session))
