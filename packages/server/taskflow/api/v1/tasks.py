"""
Task endpoints: CRUD, kanban board, status changes and assignments.

A denied status change answers 403 with the current task in
``detail.data`` so the board can put the card back.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core import projections
from taskflow.core.auth import MemberContext, SessionUser, get_current_user, require_member
from taskflow.core.database import get_session
from taskflow.core.errors import unwrap
from taskflow.services import tasks as task_service
from taskflow_shared.schemas.dashboard import ProjectTaskGroup
from taskflow_shared.schemas.tasks import (
    AssignmentCreate,
    BoardRead,
    TaskCreate,
    TaskRead,
    TaskStatusChange,
    TaskUpdate,
)

# Mounted under /projects/{project_id}
router_project = APIRouter()

# Mounted under /orgs/{org_id}
router_org = APIRouter()

# Mounted under /tasks
router = APIRouter()


# ---------------------------------------------------------------------------
# Organization-scoped
# ---------------------------------------------------------------------------


@router_org.get("/tasks", response_model=List[ProjectTaskGroup])
async def list_org_tasks(
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """All tasks in the org, grouped by project."""
    return await task_service.list_org_tasks(ctx, session)


# ---------------------------------------------------------------------------
# Project-scoped
# ---------------------------------------------------------------------------


@router_project.get("/tasks", response_model=List[TaskRead])
async def list_tasks(
    project_id: uuid.UUID,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List a project's tasks, newest first."""
    return await task_service.list_project_tasks(project_id, user, session)


@router_project.post("/tasks", response_model=TaskRead, status_code=201)
async def create_task(
    project_id: uuid.UUID,
    body: TaskCreate,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await task_service.create_task(project_id, body, user, session))


@router_project.get("/board", response_model=BoardRead)
async def get_board(
    project_id: uuid.UUID,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Kanban columns for a project."""
    tasks = await task_service.list_project_tasks(project_id, user, session)
    return projections.board(project_id, tasks)


# ---------------------------------------------------------------------------
# Single task
# ---------------------------------------------------------------------------


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await task_service.get_task(task_id, user, session)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await task_service.update_task(task_id, body, user, session))


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: uuid.UUID,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    unwrap(await task_service.delete_task(task_id, user, session))


@router.post("/{task_id}/status", response_model=TaskRead)
async def change_status(
    task_id: uuid.UUID,
    body: TaskStatusChange,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Move a task between columns (assignees, Owner/Admin)."""
    return unwrap(await task_service.set_task_status(task_id, body.status, user, session))


@router.post("/{task_id}/assignments", response_model=TaskRead, status_code=201)
async def assign_user(
    task_id: uuid.UUID,
    body: AssignmentCreate,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Assign a user; without user_id the caller takes the task."""
    assignee = body.user_id or user.id
    return unwrap(await task_service.assign(task_id, assignee, user, session))


@router.delete("/{task_id}/assignments/{user_id}", response_model=TaskRead)
async def unassign_user(
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await task_service.unassign(task_id, user_id, user, session))
