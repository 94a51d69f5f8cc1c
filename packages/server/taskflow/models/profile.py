"""Profile model (one per user, created lazily)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin


class Profile(CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "profiles"

    id: uuid.UUID = Field(foreign_key="users.id", primary_key=True, ondelete="CASCADE")
    full_name: str = Field(default="", nullable=False)
    avatar_url: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    updated_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
