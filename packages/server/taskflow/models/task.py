"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Task(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    project_id: uuid.UUID = Field(
        foreign_key="projects.id", nullable=False, index=True, ondelete="CASCADE"
    )
    title: str = Field(nullable=False)
    description: Optional[str] = None
    status: str = Field(nullable=False, default="todo")  # todo | in_progress | done
    priority: str = Field(nullable=False, default="medium")  # low | medium | high
    created_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    updated_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
