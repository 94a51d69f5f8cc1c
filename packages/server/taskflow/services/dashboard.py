"""Dashboard: everything visible to the caller, grouped for display."""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskflow.core import projections
from taskflow.core.auth import SessionUser
from taskflow.models.project import Project
from taskflow.models.task import Task
from taskflow.services.organizations import list_user_orgs
from taskflow.services.tasks import enrich_tasks
from taskflow_shared.schemas.dashboard import DashboardRead
from taskflow_shared.schemas.projects import ProjectRead

log = structlog.get_logger()


async def get_dashboard(user: SessionUser, session: AsyncSession) -> DashboardRead:
    orgs = await list_user_orgs(user, session)
    org_ids = [org.id for org in orgs]
    if not org_ids:
        return DashboardRead()

    result = await session.execute(
        select(Project)
        .where(Project.organization_id.in_(org_ids))
        .order_by(Project.created_at)
    )
    projects = [ProjectRead.model_validate(p) for p in result.scalars().all()]

    result = await session.execute(
        select(Task)
        .where(Task.project_id.in_([p.id for p in projects]))
        .order_by(Task.created_at.desc())
    )
    tasks = await enrich_tasks(session, list(result.scalars().all()))

    log.debug("dashboard.loaded", user_id=str(user.id), projects=len(projects), tasks=len(tasks))
    return DashboardRead(
        projects_by_organization=projections.group_projects_by_organization(projects, orgs),
        tasks_by_organization=projections.group_tasks_by_organization_and_project(
            tasks, projects, orgs
        ),
    )
