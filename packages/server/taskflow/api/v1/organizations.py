"""
Organization API endpoints.

GET    /api/v1/orgs                           — List orgs for the authenticated user
POST   /api/v1/orgs                           — Create a new org (creator becomes owner)
GET    /api/v1/orgs/{org_id}                  — Get org details
DELETE /api/v1/orgs/{org_id}                  — Delete the org (owner only)
GET    /api/v1/orgs/{org_id}/members          — List members
PATCH  /api/v1/orgs/{org_id}/members/{user_id} — Change a member's role
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.auth import MemberContext, SessionUser, get_current_user, require_member
from taskflow.core.database import get_session
from taskflow.core.errors import unwrap
from taskflow.services import organizations as org_service
from taskflow_shared.schemas.organizations import (
    MemberListResponse,
    MemberRead,
    MemberRoleUpdate,
    OrgCreateRequest,
    OrgListResponse,
    OrgRead,
)

# ---------------------------------------------------------------------------
# Non-org-scoped routes (no org_id in path)
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("/orgs", response_model=OrgListResponse, tags=["Organizations"])
async def list_orgs(
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user belongs to."""
    items = await org_service.list_user_orgs(user, session)
    return OrgListResponse(data=items)


@router_global.post("/orgs", response_model=OrgRead, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    user: SessionUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its owner."""
    return unwrap(await org_service.create_org(body, user, session))


# ---------------------------------------------------------------------------
# Org-scoped routes (org_id in path)
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("", response_model=OrgRead, tags=["Organizations"])
async def get_org(
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await org_service.get_org(ctx, session)


@router_scoped.delete("", status_code=204, tags=["Organizations"])
async def delete_org(
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Delete the org with all its projects, tasks and memberships (Owner only)."""
    unwrap(await org_service.delete_org(ctx, session))


@router_scoped.get("/members", response_model=MemberListResponse, tags=["Members"])
async def list_members(
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return MemberListResponse(data=await org_service.list_members(ctx, session))


@router_scoped.patch("/members/{user_id}", response_model=MemberRead, tags=["Members"])
async def update_member_role(
    user_id: uuid.UUID,
    body: MemberRoleUpdate,
    ctx: MemberContext = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Change a member's role. Ownership cannot be granted here."""
    return unwrap(await org_service.update_member_role(ctx, user_id, body.role, session))
