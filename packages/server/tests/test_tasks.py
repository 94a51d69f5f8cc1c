"""
Tests for tasks: CRUD, assignment and status changes.

Covers:
- Managers create, edit and delete tasks; members may not
- Duplicate assignment is a conflict, never a second row
- Unassign is idempotent
- Status changes re-read role and assignment; denials carry the current task
- Assignee names degrade to a placeholder without a profile
"""

from __future__ import annotations

import uuid

import pytest
from sqlmodel import select

from taskflow.models.assignment import TaskAssignment
from taskflow.models.membership import Membership
from taskflow.services import tasks as task_service
from taskflow.services.projects import create_project
from taskflow.core.auth import MemberContext
from taskflow_shared.schemas.common import (
    ConflictCode,
    ErrorKind,
    Role,
    TaskPriority,
    TaskStatus,
    UNKNOWN_USER,
)
from taskflow_shared.schemas.projects import ProjectCreate
from taskflow_shared.schemas.tasks import TaskCreate, TaskUpdate


@pytest.fixture
async def team(session, make_user, make_org):
    owner = await make_user("owner@example.com", "Olivia Owner")
    admin = await make_user("admin@example.com", "Adam Admin")
    member = await make_user("member@example.com", "Mia Member")
    org = await make_org(owner, members=[(admin, Role.ADMIN), (member, Role.MEMBER)])

    ctx = MemberContext(
        user_id=owner.id, email=owner.email, org_id=org.id, org_name=org.name, role=Role.OWNER
    )
    project = (await create_project(ctx, ProjectCreate(name="Website"), session)).data
    await session.commit()
    return owner, admin, member, org, project


async def _new_task(session, project, user, title="Write copy"):
    result = await task_service.create_task(project.id, TaskCreate(title=title), user, session)
    await session.commit()
    assert result.success, result.error
    return result.data


async def _assignment_count(session, task_id, user_id) -> int:
    rows = await session.execute(
        select(TaskAssignment).where(
            TaskAssignment.task_id == task_id, TaskAssignment.assigned_to == user_id
        )
    )
    return len(rows.scalars().all())


class TestTaskCrud:
    @pytest.mark.asyncio
    async def test_create_defaults(self, session, team):
        owner, _, _, _, project = team
        task = await _new_task(session, project, owner)
        assert task.status == TaskStatus.TODO
        assert task.priority == TaskPriority.MEDIUM
        assert task.assignments == []

    @pytest.mark.asyncio
    async def test_member_cannot_create(self, session, team):
        _, _, member, _, project = team
        result = await task_service.create_task(project.id, TaskCreate(title="x"), member, session)
        assert result.kind == ErrorKind.NOT_AUTHORIZED

    @pytest.mark.asyncio
    async def test_non_member_sees_not_found(self, session, team, make_user):
        _, _, _, _, project = team
        outsider = await make_user("outsider@example.com")
        result = await task_service.create_task(project.id, TaskCreate(title="x"), outsider, session)
        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_update_stamps_updated_at(self, session, team):
        _, admin, _, _, project = team
        task = await _new_task(session, project, admin)
        result = await task_service.update_task(
            task.id, TaskUpdate(title="Final copy", priority=TaskPriority.HIGH), admin, session
        )
        assert result.success
        assert result.data.title == "Final copy"
        assert result.data.priority == TaskPriority.HIGH
        assert result.data.updated_at is not None

    @pytest.mark.asyncio
    async def test_list_newest_first(self, session, team):
        owner, _, member, _, project = team
        await _new_task(session, project, owner, "first")
        await _new_task(session, project, owner, "second")
        tasks = await task_service.list_project_tasks(project.id, member, session)
        assert [t.title for t in tasks] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_delete_requires_manager(self, session, team):
        owner, _, member, _, project = team
        task = await _new_task(session, project, owner)

        denied = await task_service.delete_task(task.id, member, session)
        assert denied.kind == ErrorKind.NOT_AUTHORIZED

        result = await task_service.delete_task(task.id, owner, session)
        await session.commit()
        assert result.success
        missing = await task_service.delete_task(task.id, owner, session)
        assert missing.kind == ErrorKind.NOT_FOUND


class TestAssignment:
    @pytest.mark.asyncio
    async def test_member_takes_task(self, session, team):
        owner, _, member, _, project = team
        task = await _new_task(session, project, owner)
        result = await task_service.assign(task.id, member.id, member, session)
        await session.commit()

        assert result.success
        assert result.data.is_assigned_to(member.id)
        assert result.data.assignments[0].full_name == "Mia Member"

    @pytest.mark.asyncio
    async def test_member_cannot_assign_others(self, session, team):
        owner, admin, member, _, project = team
        task = await _new_task(session, project, owner)
        result = await task_service.assign(task.id, admin.id, member, session)
        assert result.kind == ErrorKind.NOT_AUTHORIZED
        assert await _assignment_count(session, task.id, admin.id) == 0

    @pytest.mark.asyncio
    async def test_duplicate_assignment_is_conflict(self, session, team):
        owner, _, member, _, project = team
        task = await _new_task(session, project, owner)
        first = await task_service.assign(task.id, member.id, owner, session)
        await session.commit()
        second = await task_service.assign(task.id, member.id, owner, session)

        assert first.success
        assert second.kind == ErrorKind.CONFLICT
        assert second.code == ConflictCode.DUPLICATE_ASSIGNMENT.value
        assert await _assignment_count(session, task.id, member.id) == 1

    @pytest.mark.asyncio
    async def test_assignee_must_be_member(self, session, team, make_user):
        owner, _, _, _, project = team
        outsider = await make_user("outsider@example.com")
        task = await _new_task(session, project, owner)
        result = await task_service.assign(task.id, outsider.id, owner, session)
        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_unassign_is_idempotent(self, session, team):
        owner, _, member, _, project = team
        task = await _new_task(session, project, owner)
        await task_service.assign(task.id, member.id, owner, session)
        await session.commit()

        first = await task_service.unassign(task.id, member.id, member, session)
        await session.commit()
        second = await task_service.unassign(task.id, member.id, member, session)
        await session.commit()

        assert first.success and second.success
        assert await _assignment_count(session, task.id, member.id) == 0

    @pytest.mark.asyncio
    async def test_member_cannot_unassign_others(self, session, team):
        owner, admin, member, _, project = team
        task = await _new_task(session, project, owner)
        await task_service.assign(task.id, admin.id, admin, session)
        await session.commit()

        result = await task_service.unassign(task.id, admin.id, member, session)
        assert result.kind == ErrorKind.NOT_AUTHORIZED
        assert await _assignment_count(session, task.id, admin.id) == 1

    @pytest.mark.asyncio
    async def test_missing_profile_uses_placeholder(self, session, team, make_user):
        owner, _, _, org, project = team
        nameless = await make_user("nameless@example.com", full_name=None)
        session.add(Membership(user_id=nameless.id, organization_id=org.id, role="member"))
        await session.commit()

        task = await _new_task(session, project, owner)
        result = await task_service.assign(task.id, nameless.id, owner, session)
        assert result.data.assignments[0].full_name == UNKNOWN_USER


class TestStatusChange:
    @pytest.mark.asyncio
    async def test_manager_moves_any_task(self, session, team):
        owner, admin, _, _, project = team
        task = await _new_task(session, project, owner)
        result = await task_service.set_task_status(task.id, TaskStatus.IN_PROGRESS, admin, session)
        assert result.success
        assert result.data.status == TaskStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_assignee_moves_own_task(self, session, team):
        owner, _, member, _, project = team
        task = await _new_task(session, project, owner)
        await task_service.assign(task.id, member.id, member, session)
        await session.commit()

        result = await task_service.set_task_status(task.id, TaskStatus.DONE, member, session)
        assert result.success
        assert result.data.status == TaskStatus.DONE

    @pytest.mark.asyncio
    async def test_denied_move_returns_current_state(self, session, team):
        owner, _, member, _, project = team
        task = await _new_task(session, project, owner)

        result = await task_service.set_task_status(task.id, TaskStatus.DONE, member, session)

        assert not result.success
        assert result.kind == ErrorKind.NOT_AUTHORIZED
        assert result.data.id == task.id
        assert result.data.status == TaskStatus.TODO
        current = await task_service.get_task(task.id, owner, session)
        assert current.status == TaskStatus.TODO

    @pytest.mark.asyncio
    async def test_unassigned_after_board_load_is_denied(self, session, team):
        owner, _, member, _, project = team
        task = await _new_task(session, project, owner)
        await task_service.assign(task.id, member.id, owner, session)
        await session.commit()
        board_view = await task_service.get_task(task.id, member, session)
        assert board_view.is_assigned_to(member.id)

        # Assignment removed elsewhere; the stale board still shows it
        await task_service.unassign(task.id, member.id, owner, session)
        await session.commit()

        result = await task_service.set_task_status(task.id, TaskStatus.DONE, member, session)
        assert result.kind == ErrorKind.NOT_AUTHORIZED
        assert result.data.assignments == []

    @pytest.mark.asyncio
    async def test_unknown_task(self, session, team):
        owner, *_ = team
        result = await task_service.set_task_status(uuid.uuid4(), TaskStatus.DONE, owner, session)
        assert result.kind == ErrorKind.NOT_FOUND


class TestOrganizationOverview:
    @pytest.mark.asyncio
    async def test_tasks_grouped_by_project(self, session, team):
        owner, _, member, org, project = team
        ctx = MemberContext(
            user_id=owner.id, email=owner.email, org_id=org.id, org_name=org.name, role=Role.OWNER
        )
        await create_project(ctx, ProjectCreate(name="Empty"), session)
        await session.commit()
        await _new_task(session, project, owner, title="Write copy")
        await _new_task(session, project, owner, title="Review copy")

        member_ctx = MemberContext(
            user_id=member.id, email=member.email, org_id=org.id, org_name=org.name, role=Role.MEMBER
        )
        groups = await task_service.list_org_tasks(member_ctx, session)

        by_name = {g.project_name: sorted(t.title for t in g.tasks) for g in groups}
        assert by_name == {"Website": ["Review copy", "Write copy"], "Empty": []}
