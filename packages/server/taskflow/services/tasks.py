"""
Task service layer: task CRUD, assignment and status changes.

Handles:
- Task CRUD inside a project (managers create, edit and delete)
- Assigning and unassigning users, one row per (task, user)
- Status changes gated on a fresh read of role and assignment
- Enrichment of tasks with assignee names for API responses
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Sequence

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskflow.core import policy, projections
from taskflow.core.auth import MemberContext, SessionUser, resolve_member_context
from taskflow.core.errors import (
    DuplicateAssignment,
    NotAuthorized,
    NotFound,
    returns_result,
)
from taskflow.models.assignment import TaskAssignment
from taskflow.models.base import utcnow
from taskflow.models.membership import Membership
from taskflow.models.project import Project
from taskflow.models.task import Task
from taskflow.services.profiles import load_profiles
from taskflow.services.projects import resolve_project
from taskflow_shared.schemas.common import UNKNOWN_USER, TaskStatus
from taskflow_shared.schemas.dashboard import ProjectTaskGroup
from taskflow_shared.schemas.projects import ProjectRead
from taskflow_shared.schemas.tasks import (
    AssignmentRead,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def resolve_task(
    task_id: uuid.UUID, user: SessionUser, session: AsyncSession
) -> tuple[Task, MemberContext]:
    """Load a task and the caller's membership in the owning organization."""
    result = await session.execute(
        select(Task, Project.organization_id)
        .join(Project, Project.id == Task.project_id)
        .where(Task.id == task_id)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFound("Task not found")
    task, org_id = row
    ctx = await resolve_member_context(session, user, org_id)
    if ctx is None:
        raise NotFound("Task not found")
    return task, ctx


async def _is_assigned(session: AsyncSession, task_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    result = await session.execute(
        select(TaskAssignment.task_id).where(
            TaskAssignment.task_id == task_id,
            TaskAssignment.assigned_to == user_id,
        )
    )
    return result.first() is not None


async def enrich_tasks(session: AsyncSession, tasks: Sequence[Task]) -> list[TaskRead]:
    """Convert Task rows to TaskRead, each with its enriched assignments."""
    if not tasks:
        return []
    result = await session.execute(
        select(TaskAssignment)
        .where(TaskAssignment.task_id.in_([t.id for t in tasks]))
        .order_by(TaskAssignment.assigned_at)
    )
    assignments = list(result.scalars().all())
    profiles = await load_profiles((a.assigned_to for a in assignments), session)

    by_task: dict[uuid.UUID, list[AssignmentRead]] = defaultdict(list)
    for a in assignments:
        profile = profiles.get(a.assigned_to)
        by_task[a.task_id].append(
            AssignmentRead(
                user_id=a.assigned_to,
                full_name=(profile.full_name or UNKNOWN_USER) if profile else UNKNOWN_USER,
                avatar_url=profile.avatar_url if profile else None,
                assigned_at=a.assigned_at,
                assigned_by=a.assigned_by,
            )
        )

    return [
        TaskRead(
            id=t.id,
            project_id=t.project_id,
            title=t.title,
            description=t.description,
            status=t.status,
            priority=t.priority,
            created_by=t.created_by,
            created_at=t.created_at,
            updated_at=t.updated_at,
            assignments=by_task.get(t.id, []),
        )
        for t in tasks
    ]


async def enrich_task(session: AsyncSession, task: Task) -> TaskRead:
    return (await enrich_tasks(session, [task]))[0]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_project_tasks(
    project_id: uuid.UUID, user: SessionUser, session: AsyncSession
) -> list[TaskRead]:
    """A project's tasks, newest first."""
    await resolve_project(project_id, user, session)
    result = await session.execute(
        select(Task)
        .where(Task.project_id == project_id)
        .order_by(Task.created_at.desc())
    )
    return await enrich_tasks(session, list(result.scalars().all()))


async def get_task(task_id: uuid.UUID, user: SessionUser, session: AsyncSession) -> TaskRead:
    task, _ = await resolve_task(task_id, user, session)
    return await enrich_task(session, task)


async def list_org_tasks(ctx: MemberContext, session: AsyncSession) -> list[ProjectTaskGroup]:
    """Every task in the organization under its project, empty projects included."""
    result = await session.execute(
        select(Project)
        .where(Project.organization_id == ctx.org_id)
        .order_by(Project.created_at)
    )
    projects = [ProjectRead.model_validate(p) for p in result.scalars().all()]
    result = await session.execute(
        select(Task)
        .where(Task.project_id.in_([p.id for p in projects]))
        .order_by(Task.created_at.desc())
    )
    tasks = await enrich_tasks(session, list(result.scalars().all()))
    return projections.group_tasks_by_project(tasks, projects)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@returns_result
async def create_task(
    project_id: uuid.UUID,
    data: TaskCreate,
    user: SessionUser,
    session: AsyncSession,
) -> TaskRead:
    _, ctx = await resolve_project(project_id, user, session)
    if not policy.can_manage_tasks(ctx.role):
        raise NotAuthorized("Only owners and admins can create tasks")

    task = Task(
        project_id=project_id,
        title=data.title.strip(),
        description=data.description,
        status=data.status.value,
        priority=data.priority.value,
        created_by=user.id,
    )
    session.add(task)
    await session.flush()
    log.info("task.created", task_id=str(task.id), project_id=str(project_id))
    return await enrich_task(session, task)


@returns_result
async def update_task(
    task_id: uuid.UUID,
    data: TaskUpdate,
    user: SessionUser,
    session: AsyncSession,
) -> TaskRead:
    task, ctx = await resolve_task(task_id, user, session)
    if not policy.can_manage_tasks(ctx.role):
        raise NotAuthorized("Only owners and admins can edit tasks")

    for key, value in data.model_dump(exclude_unset=True, mode="json").items():
        if value is None and key in ("title", "status", "priority"):
            continue
        setattr(task, key, value)
    task.updated_at = utcnow()

    session.add(task)
    await session.flush()
    log.info("task.updated", task_id=str(task_id), actor=str(user.id))
    return await enrich_task(session, task)


@returns_result
async def delete_task(task_id: uuid.UUID, user: SessionUser, session: AsyncSession) -> None:
    task, ctx = await resolve_task(task_id, user, session)
    if not policy.can_delete_task(ctx.role):
        raise NotAuthorized("Only owners and admins can delete tasks")

    await session.delete(task)
    await session.flush()
    log.info("task.deleted", task_id=str(task_id), actor=str(user.id))


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


@returns_result
async def assign(
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    by_user: SessionUser,
    session: AsyncSession,
) -> TaskRead:
    """Assign ``user_id`` to a task. Assigning twice is a duplicate_assignment conflict."""
    task, ctx = await resolve_task(task_id, by_user, session)
    if not policy.can_assign_task(ctx.role, is_self=user_id == by_user.id):
        raise NotAuthorized("Only owners and admins can assign other members")

    result = await session.execute(
        select(Membership.id).where(
            Membership.organization_id == ctx.org_id,
            Membership.user_id == user_id,
        )
    )
    if result.first() is None:
        raise NotFound("Assignee is not a member of this organization")

    if await _is_assigned(session, task_id, user_id):
        raise DuplicateAssignment()

    session.add(TaskAssignment(task_id=task_id, assigned_to=user_id, assigned_by=by_user.id))
    try:
        await session.flush()
    except IntegrityError:
        # Lost a race with a concurrent assign of the same pair
        raise DuplicateAssignment()

    log.info("task.assigned", task_id=str(task_id), user_id=str(user_id), by=str(by_user.id))
    return await enrich_task(session, task)


@returns_result
async def unassign(
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    by_user: SessionUser,
    session: AsyncSession,
) -> TaskRead:
    """Remove an assignment. Removing one that does not exist still succeeds."""
    task, ctx = await resolve_task(task_id, by_user, session)
    if not policy.can_remove_task_assignment(ctx.role, is_self=user_id == by_user.id):
        raise NotAuthorized("Only owners and admins can unassign other members")

    result = await session.execute(
        delete(TaskAssignment).where(
            TaskAssignment.task_id == task_id,
            TaskAssignment.assigned_to == user_id,
        )
    )
    log.info(
        "task.unassigned",
        task_id=str(task_id),
        user_id=str(user_id),
        removed=result.rowcount,
    )
    return await enrich_task(session, task)


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@returns_result
async def set_task_status(
    task_id: uuid.UUID,
    new_status: TaskStatus,
    by_user: SessionUser,
    session: AsyncSession,
) -> TaskRead:
    """Move a task to another kanban column.

    Role and assignment are read from the store here, never taken from the
    caller's board. A denied move writes nothing and carries the current task
    so the caller can put the card back.
    """
    task, ctx = await resolve_task(task_id, by_user, session)
    is_assigned = await _is_assigned(session, task_id, by_user.id)

    if not policy.can_change_task_status(ctx.role, is_assigned):
        current = await enrich_task(session, task)
        log.info(
            "task.status_denied",
            task_id=str(task_id),
            user_id=str(by_user.id),
            requested=new_status.value,
            current=task.status,
        )
        raise NotAuthorized(
            "Only assignees, owners and admins can move this task", data=current
        )

    previous = task.status
    task.status = new_status.value
    task.updated_at = utcnow()
    session.add(task)
    await session.flush()
    log.info(
        "task.status_changed",
        task_id=str(task_id),
        from_status=previous,
        to_status=new_status.value,
        by=str(by_user.id),
    )
    return await enrich_task(session, task)
