"""
Organization service — org lifecycle and membership management.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskflow.core import policy
from taskflow.core.auth import MemberContext, SessionUser
from taskflow.core.errors import NotAuthorized, NotFound, returns_result
from taskflow.models.membership import Membership
from taskflow.models.organization import Organization
from taskflow.services.profiles import load_profiles
from taskflow_shared.schemas.common import UNKNOWN_USER, Role
from taskflow_shared.schemas.organizations import (
    MemberRead,
    OrgCreateRequest,
    OrgListItem,
    OrgRead,
)

log = structlog.get_logger()


async def list_user_orgs(user: SessionUser, session: AsyncSession) -> list[OrgListItem]:
    """List all orgs a user belongs to, with their role."""
    result = await session.execute(
        select(Organization, Membership.role)
        .join(Membership, Membership.organization_id == Organization.id)
        .where(Membership.user_id == user.id)
        .order_by(Organization.created_at)
    )
    return [
        OrgListItem(
            id=org.id,
            name=org.name,
            description=org.description,
            created_by=org.created_by,
            created_at=org.created_at,
            role=role,
        )
        for org, role in result.all()
    ]


@returns_result
async def create_org(
    req: OrgCreateRequest,
    creator: SessionUser,
    session: AsyncSession,
) -> OrgRead:
    """Create an org and make the creator its single owner."""
    org = Organization(
        name=req.name.strip(),
        description=req.description,
        created_by=creator.id,
    )
    session.add(org)
    await session.flush()

    session.add(
        Membership(user_id=creator.id, organization_id=org.id, role=Role.OWNER.value)
    )
    await session.flush()

    log.info("org.created", org_id=str(org.id), creator=str(creator.id))
    return OrgRead.model_validate(org)


async def get_org(ctx: MemberContext, session: AsyncSession) -> OrgRead:
    org = await session.get(Organization, ctx.org_id)
    if not org:
        raise NotFound("Organization not found")
    return OrgRead.model_validate(org)


@returns_result
async def delete_org(ctx: MemberContext, session: AsyncSession) -> None:
    """Hard-delete an org. Projects, tasks, memberships and invitations cascade."""
    if not policy.can_delete_organization(ctx.role):
        raise NotAuthorized("Only the owner can delete an organization")

    org = await session.get(Organization, ctx.org_id)
    if not org:
        raise NotFound("Organization not found")
    await session.delete(org)
    await session.flush()
    log.info("org.deleted", org_id=str(ctx.org_id), actor=str(ctx.user_id))


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

async def get_membership(
    org_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> Optional[Membership]:
    result = await session.execute(
        select(Membership).where(
            Membership.organization_id == org_id, Membership.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


def _member_read(membership: Membership, profile, ctx: MemberContext) -> MemberRead:
    is_self = membership.user_id == ctx.user_id
    return MemberRead(
        id=membership.id,
        user_id=membership.user_id,
        organization_id=membership.organization_id,
        role=membership.role,
        full_name=(profile.full_name or UNKNOWN_USER) if profile else UNKNOWN_USER,
        avatar_url=profile.avatar_url if profile else None,
        created_at=membership.created_at,
        assignable_roles=policy.assignable_roles(ctx.role, membership.role, is_self),
    )


async def list_members(ctx: MemberContext, session: AsyncSession) -> list[MemberRead]:
    """Members with display names; a missing profile shows as 'Unknown User'."""
    result = await session.execute(
        select(Membership)
        .where(Membership.organization_id == ctx.org_id)
        .order_by(Membership.created_at)
    )
    memberships = list(result.scalars().all())
    profiles = await load_profiles((m.user_id for m in memberships), session)
    return [_member_read(m, profiles.get(m.user_id), ctx) for m in memberships]


@returns_result
async def update_member_role(
    ctx: MemberContext,
    target_user_id: uuid.UUID,
    new_role: Role,
    session: AsyncSession,
) -> MemberRead:
    """Change a member's role. The target's current role is read from the store."""
    membership = await get_membership(ctx.org_id, target_user_id, session)
    if membership is None:
        raise NotFound("Member not found in this organization")

    is_self = target_user_id == ctx.user_id
    if not policy.can_update_member_role(ctx.role, membership.role, is_self, new_role):
        raise NotAuthorized("You cannot change this member's role")

    old_role = membership.role
    membership.role = new_role.value
    session.add(membership)
    await session.flush()

    log.info(
        "member.role_updated",
        org_id=str(ctx.org_id),
        user_id=str(target_user_id),
        from_role=old_role,
        to_role=new_role.value,
        actor=str(ctx.user_id),
    )
    profiles = await load_profiles([target_user_id], session)
    return _member_read(membership, profiles.get(target_user_id), ctx)
