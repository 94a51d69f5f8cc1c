"""
Project service — projects live inside one organization.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskflow.core import policy
from taskflow.core.auth import MemberContext, SessionUser, resolve_member_context
from taskflow.core.errors import NotAuthorized, NotFound, returns_result
from taskflow.models.project import Project
from taskflow_shared.schemas.projects import ProjectCreate, ProjectRead

log = structlog.get_logger()


async def resolve_project(
    project_id: uuid.UUID, user: SessionUser, session: AsyncSession
) -> tuple[Project, MemberContext]:
    """Load a project and the caller's membership in its organization.

    Missing projects and projects outside the caller's organizations are
    indistinguishable (NotFound).
    """
    project = await session.get(Project, project_id)
    if project is None:
        raise NotFound("Project not found")
    ctx = await resolve_member_context(session, user, project.organization_id)
    if ctx is None:
        raise NotFound("Project not found")
    return project, ctx


async def list_org_projects(ctx: MemberContext, session: AsyncSession) -> list[ProjectRead]:
    result = await session.execute(
        select(Project)
        .where(Project.organization_id == ctx.org_id)
        .order_by(Project.created_at)
    )
    return [ProjectRead.model_validate(p) for p in result.scalars().all()]


async def get_project(
    project_id: uuid.UUID, user: SessionUser, session: AsyncSession
) -> ProjectRead:
    project, _ = await resolve_project(project_id, user, session)
    return ProjectRead.model_validate(project)


@returns_result
async def create_project(
    ctx: MemberContext, req: ProjectCreate, session: AsyncSession
) -> ProjectRead:
    if not policy.can_create_project(ctx.role):
        raise NotAuthorized("Only owners and admins can create projects")

    project = Project(
        organization_id=ctx.org_id,
        name=req.name.strip(),
        description=req.description,
        created_by=ctx.user_id,
    )
    session.add(project)
    await session.flush()
    log.info("project.created", project_id=str(project.id), org_id=str(ctx.org_id))
    return ProjectRead.model_validate(project)


@returns_result
async def delete_project(
    project_id: uuid.UUID, user: SessionUser, session: AsyncSession
) -> None:
    """Delete a project; its tasks and their assignments cascade."""
    project, ctx = await resolve_project(project_id, user, session)
    if not policy.can_delete_project(ctx.role):
        raise NotAuthorized("Only owners and admins can delete projects")

    await session.delete(project)
    await session.flush()
    log.info("project.deleted", project_id=str(project_id), actor=str(user.id))
