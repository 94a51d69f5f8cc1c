"""Invitation model. Status moves pending -> accepted | expired and never back."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Invitation(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "invitations"

    organization_id: uuid.UUID = Field(
        foreign_key="organizations.id", nullable=False, index=True, ondelete="CASCADE"
    )
    email: str = Field(nullable=False, index=True)  # stored lowercased
    role: str = Field(nullable=False, default="member")  # admin | member
    token: str = Field(nullable=False, unique=True, index=True)
    invited_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    status: str = Field(nullable=False, default="pending")  # pending | accepted | expired
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    accepted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
