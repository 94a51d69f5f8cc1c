"""Invitation schemas and lifecycle transitions."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, field_validator

from .common import InvitationStatus, Role


# Valid state transitions for the invitation lifecycle
INVITATION_TRANSITIONS: dict[InvitationStatus, list[InvitationStatus]] = {
    InvitationStatus.PENDING: [InvitationStatus.ACCEPTED, InvitationStatus.EXPIRED],
    InvitationStatus.ACCEPTED: [],
    InvitationStatus.EXPIRED: [],
}


class InvitationCreate(BaseModel):
    email: EmailStr
    role: Role = Role.MEMBER

    @field_validator("role")
    @classmethod
    def _no_owner_invites(cls, v: Role) -> Role:
        if v == Role.OWNER:
            raise ValueError("Invitations may only grant the admin or member role")
        return v


class InvitationRead(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    email: str
    role: Role
    invited_by: uuid.UUID
    status: InvitationStatus
    expires_at: datetime
    accepted_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class InvitationLink(BaseModel):
    """Returned to the inviter; the token is only ever shown here and in the link."""

    invitation_id: uuid.UUID
    email: str
    role: Role
    token: str
    url: str
    expires_at: datetime


class InvitationView(InvitationRead):
    """What the invitee sees on the invitation landing page."""

    organization_name: str
    inviter_name: str


class InvitationListResponse(BaseModel):
    data: list[InvitationRead]
