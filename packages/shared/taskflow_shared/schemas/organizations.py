"""
Organization and membership schemas.

Covers: org create/read, the caller's org list, member listing and
role updates.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import Role, strip_required


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        return strip_required(v, "name")


class OrgRead(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    created_by: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class OrgListItem(OrgRead):
    role: Role  # the requesting user's role in this org


class OrgListResponse(BaseModel):
    data: list[OrgListItem]


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

class MemberRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    organization_id: uuid.UUID
    role: Role
    full_name: str
    avatar_url: Optional[str] = None
    created_at: datetime
    # Roles the requesting user may move this member to
    assignable_roles: list[Role] = Field(default_factory=list)


class MemberListResponse(BaseModel):
    data: list[MemberRead]


class MemberRoleUpdate(BaseModel):
    role: Role
