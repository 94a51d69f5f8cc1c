"""Task-user assignment join table. The composite key makes duplicates impossible."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import utcnow


class TaskAssignment(SQLModel, table=True):
    __tablename__ = "task_assignments"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", primary_key=True, ondelete="CASCADE")
    assigned_to: uuid.UUID = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    assigned_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    assigned_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
