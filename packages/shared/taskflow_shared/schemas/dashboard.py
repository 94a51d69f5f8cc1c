"""Grouped read projections for the dashboard and organization views."""

from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel, Field

from .projects import ProjectRead
from .tasks import TaskRead


class ProjectGroup(BaseModel):
    organization_id: UUID
    organization_name: str
    projects: List[ProjectRead] = Field(default_factory=list)


class ProjectTaskGroup(BaseModel):
    project_id: UUID
    project_name: str
    tasks: List[TaskRead] = Field(default_factory=list)


class OrganizationTaskGroup(BaseModel):
    organization_id: UUID
    organization_name: str
    projects: List[ProjectTaskGroup] = Field(default_factory=list)


class DashboardRead(BaseModel):
    projects_by_organization: List[ProjectGroup] = Field(default_factory=list)
    tasks_by_organization: List[OrganizationTaskGroup] = Field(default_factory=list)
