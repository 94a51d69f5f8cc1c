"""
Read projections over already-fetched flat lists.

Pure and deterministic: groups appear in order of first encounter and items
keep their input order. References that cannot be resolved are grouped under
placeholder names instead of being dropped.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Sequence

from taskflow_shared.schemas.common import (
    TASK_STATUS_ORDER,
    UNKNOWN_ORGANIZATION,
    UNKNOWN_PROJECT,
    TaskStatus,
)
from taskflow_shared.schemas.dashboard import (
    OrganizationTaskGroup,
    ProjectGroup,
    ProjectTaskGroup,
)
from taskflow_shared.schemas.organizations import OrgRead
from taskflow_shared.schemas.projects import ProjectRead
from taskflow_shared.schemas.tasks import BoardRead, TaskRead

# Nil UUID stands in for "no organization" in the orphaned-task group
_UNKNOWN_ID = uuid.UUID(int=0)


def tasks_by_status(tasks: Iterable[TaskRead], status: TaskStatus) -> list[TaskRead]:
    return [t for t in tasks if t.status == status]


def board(project_id: uuid.UUID, tasks: Sequence[TaskRead]) -> BoardRead:
    """Split a project's tasks into kanban columns."""
    columns = {status.value: tasks_by_status(tasks, status) for status in TASK_STATUS_ORDER}
    return BoardRead(project_id=project_id, **columns)


def group_projects_by_organization(
    projects: Iterable[ProjectRead],
    organizations: Iterable[OrgRead],
) -> list[ProjectGroup]:
    names = {org.id: org.name for org in organizations}
    groups: dict[uuid.UUID, ProjectGroup] = {}
    for project in projects:
        group = groups.get(project.organization_id)
        if group is None:
            group = ProjectGroup(
                organization_id=project.organization_id,
                organization_name=names.get(project.organization_id, UNKNOWN_ORGANIZATION),
            )
            groups[project.organization_id] = group
        group.projects.append(project)
    return list(groups.values())


def group_tasks_by_project(
    tasks: Iterable[TaskRead],
    projects: Sequence[ProjectRead],
) -> list[ProjectTaskGroup]:
    """One group per project in project order, empty projects included."""
    groups = {
        p.id: ProjectTaskGroup(project_id=p.id, project_name=p.name)
        for p in projects
    }
    for task in tasks:
        group = groups.get(task.project_id)
        if group is not None:
            group.tasks.append(task)
    return list(groups.values())


def group_tasks_by_organization_and_project(
    tasks: Iterable[TaskRead],
    projects: Iterable[ProjectRead],
    organizations: Iterable[OrgRead],
) -> list[OrganizationTaskGroup]:
    projects_by_id = {p.id: p for p in projects}
    org_names = {org.id: org.name for org in organizations}

    orgs: dict[uuid.UUID | None, OrganizationTaskGroup] = {}
    project_groups: dict[tuple[uuid.UUID | None, uuid.UUID], ProjectTaskGroup] = {}

    for task in tasks:
        project = projects_by_id.get(task.project_id)
        if project is not None:
            org_id = project.organization_id
            org_name = org_names.get(org_id, UNKNOWN_ORGANIZATION)
            project_name = project.name
        else:
            # Orphaned task: its organization can't be known either
            org_id = None
            org_name = UNKNOWN_ORGANIZATION
            project_name = UNKNOWN_PROJECT

        org_group = orgs.get(org_id)
        if org_group is None:
            org_group = OrganizationTaskGroup(
                organization_id=org_id or _UNKNOWN_ID,
                organization_name=org_name,
            )
            orgs[org_id] = org_group

        key = (org_id, task.project_id)
        project_group = project_groups.get(key)
        if project_group is None:
            project_group = ProjectTaskGroup(project_id=task.project_id, project_name=project_name)
            project_groups[key] = project_group
            org_group.projects.append(project_group)
        project_group.tasks.append(task)

    return list(orgs.values())
