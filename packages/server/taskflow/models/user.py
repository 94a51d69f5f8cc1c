"""Authenticated identity. Display data lives on Profile."""

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class User(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)  # stored lowercased
    password_hash: Optional[str] = Field(default=None)  # bcrypt
    last_sign_in_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
