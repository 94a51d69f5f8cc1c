"""
Invitation endpoints.

Managers create, list and revoke invitations for their org. The invitee
opens the shared link, then accepts (signed in with the invited email) or
declines.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.auth import MemberContext, SessionUser, get_current_user, require_member
from taskflow.core.database import get_session
from taskflow.core.errors import unwrap
from taskflow.services import invitations as invitation_service
from taskflow_shared.schemas.invitations import (
    InvitationCreate,
    InvitationLink,
    InvitationListResponse,
    InvitationView,
)
from taskflow_shared.schemas.organizations import MemberRead

# Mounted under /orgs/{org_id}/invitations
router_scoped = APIRouter()

# Mounted under /invitations
router_public = APIRouter()


@router_scoped.get("", response_model=InvitationListResponse)
async def list_invitations(
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Pending invitations (Owner/Admin)."""
    data = await invitation_service.list_pending_invitations(ctx, session)
    return InvitationListResponse(data=data)


@router_scoped.post("", response_model=InvitationLink, status_code=201)
async def create_invitation(
    body: InvitationCreate,
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Create an invitation and return its shareable link (Owner/Admin)."""
    return unwrap(
        await invitation_service.create_invitation(ctx, body.email, body.role, session)
    )


@router_scoped.delete("/{invitation_id}", status_code=204)
async def revoke_invitation(
    invitation_id: uuid.UUID,
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    unwrap(await invitation_service.revoke_invitation(ctx, invitation_id, session))


@router_public.get("/{token}", response_model=InvitationView)
async def get_invitation(
    token: str,
    session: AsyncSession = Depends(get_session),
):
    """Invitation landing page data. Readable without signing in."""
    return await invitation_service.get_invitation(token, session)


@router_public.post("/{token}/accept", response_model=MemberRead)
async def accept_invitation(
    token: str,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await invitation_service.accept_invitation(token, user, session))


@router_public.post("/{token}/decline")
async def decline_invitation(
    token: str,
    session: AsyncSession = Depends(get_session),
):
    await invitation_service.decline_invitation(token, session)
    return {"message": "Invitation declined"}
