"""Task and assignment schemas shared by the server and the polling client."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .common import TaskPriority, TaskStatus, strip_required


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------

class AssignmentCreate(BaseModel):
    """Assign a user to a task. Omitting user_id assigns the caller."""
    user_id: Optional[UUID] = None


class AssignmentRead(BaseModel):
    user_id: UUID
    full_name: str
    avatar_url: Optional[str] = None
    assigned_at: datetime
    assigned_by: UUID


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        return strip_required(v, "title")


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return strip_required(v, "title")


class TaskStatusChange(BaseModel):
    status: TaskStatus


class TaskRead(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority = TaskPriority.MEDIUM
    created_by: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None
    assignments: List[AssignmentRead] = Field(default_factory=list)

    def is_assigned_to(self, user_id: UUID) -> bool:
        return any(a.user_id == user_id for a in self.assignments)


class BoardRead(BaseModel):
    """Kanban columns for one project."""
    project_id: UUID
    todo: List[TaskRead] = Field(default_factory=list)
    in_progress: List[TaskRead] = Field(default_factory=list)
    done: List[TaskRead] = Field(default_factory=list)
