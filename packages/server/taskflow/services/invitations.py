"""
Invitation service — the membership lifecycle.

    pending ──accept──▶ accepted
       │
       └──(past expires_at)──▶ expired

Invitations are shared as links carrying an opaque token; nothing is mailed.
Expiry is applied lazily whenever a pending invitation is read.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import timedelta
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import and_, delete, or_
from sqlmodel import select

from taskflow.core import policy
from taskflow.core.auth import MemberContext, SessionUser, normalize_email
from taskflow.core.config import get_settings
from taskflow.core.errors import (
    AlreadyInvited,
    AlreadyMember,
    EmailMismatch,
    Expired,
    NotAuthorized,
    NotFound,
    returns_result,
)
from taskflow.models.base import as_utc, utcnow
from taskflow.models.invitation import Invitation
from taskflow.models.membership import Membership
from taskflow.models.organization import Organization
from taskflow.models.user import User
from taskflow.services.profiles import load_profiles
from taskflow_shared.schemas.common import (
    UNKNOWN_ORGANIZATION,
    UNKNOWN_USER,
    InvitationStatus,
    Role,
)
from taskflow_shared.schemas.invitations import (
    INVITATION_TRANSITIONS,
    InvitationLink,
    InvitationRead,
    InvitationView,
)
from taskflow_shared.schemas.organizations import MemberRead

log = structlog.get_logger()
settings = get_settings()


def invitation_url(token: str) -> str:
    return f"{settings.app_base_url.rstrip('/')}/invitation/{token}"


def is_past_expiry(invitation: Invitation) -> bool:
    return utcnow() > as_utc(invitation.expires_at)


def _transition(invitation: Invitation, to: InvitationStatus) -> None:
    current = InvitationStatus(invitation.status)
    if to not in INVITATION_TRANSITIONS[current]:
        raise ValueError(f"Invalid invitation transition: {current.value} -> {to.value}")
    invitation.status = to.value


async def _expire_if_stale(invitation: Invitation, session: AsyncSession) -> bool:
    """Flip a pending invitation past its expiry to ``expired`` and commit.

    Returns True when the invitation is (now) expired.
    """
    if invitation.status != InvitationStatus.PENDING.value or not is_past_expiry(invitation):
        return invitation.status == InvitationStatus.EXPIRED.value
    _transition(invitation, InvitationStatus.EXPIRED)
    session.add(invitation)
    await session.commit()
    log.info("invitation.expired", invitation_id=str(invitation.id))
    return True


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

@returns_result
async def create_invitation(
    ctx: MemberContext,
    email: str,
    role: Role,
    session: AsyncSession,
) -> InvitationLink:
    if not policy.can_invite_members(ctx.role):
        raise NotAuthorized("Only owners and admins can invite members")
    if role == Role.OWNER:
        raise NotAuthorized("Invitations may only grant the admin or member role")

    email = normalize_email(email)
    now = utcnow()

    # Existing invitations for this (org, email)
    result = await session.execute(
        select(Invitation).where(
            Invitation.organization_id == ctx.org_id,
            Invitation.email == email,
            Invitation.status == InvitationStatus.PENDING.value,
        )
    )
    for pending in result.scalars().all():
        if as_utc(pending.expires_at) >= now:
            raise AlreadyInvited()

    result = await session.execute(
        select(Membership.id)
        .join(User, User.id == Membership.user_id)
        .where(Membership.organization_id == ctx.org_id, User.email == email)
    )
    if result.first() is not None:
        raise AlreadyMember()

    # Prior expired invitations (flipped or not) make way for the new one
    await session.execute(
        delete(Invitation).where(
            Invitation.organization_id == ctx.org_id,
            Invitation.email == email,
            or_(
                Invitation.status == InvitationStatus.EXPIRED.value,
                and_(
                    Invitation.status == InvitationStatus.PENDING.value,
                    Invitation.expires_at < now,
                ),
            ),
        )
        .execution_options(synchronize_session=False)
    )

    invitation = Invitation(
        organization_id=ctx.org_id,
        email=email,
        role=role.value,
        token=secrets.token_urlsafe(32),
        invited_by=ctx.user_id,
        status=InvitationStatus.PENDING.value,
        expires_at=now + timedelta(days=settings.invitation_ttl_days),
    )
    session.add(invitation)
    await session.flush()

    url = invitation_url(invitation.token)
    log.info(
        "invitation.created",
        invitation_id=str(invitation.id),
        org_id=str(ctx.org_id),
        email=email,
        role=role.value,
        invited_by=str(ctx.user_id),
        link=url,
    )
    return InvitationLink(
        invitation_id=invitation.id,
        email=email,
        role=role,
        token=invitation.token,
        url=url,
        expires_at=invitation.expires_at,
    )


# ---------------------------------------------------------------------------
# Manager views
# ---------------------------------------------------------------------------

async def list_pending_invitations(
    ctx: MemberContext, session: AsyncSession
) -> list[InvitationRead]:
    """Pending invitations for an org. Stale rows are expired on the way out."""
    if not policy.can_invite_members(ctx.role):
        raise NotAuthorized("Only owners and admins can view invitations")

    result = await session.execute(
        select(Invitation)
        .where(
            Invitation.organization_id == ctx.org_id,
            Invitation.status == InvitationStatus.PENDING.value,
        )
        .order_by(Invitation.created_at)
    )
    pending = []
    for invitation in result.scalars().all():
        if await _expire_if_stale(invitation, session):
            continue
        pending.append(InvitationRead.model_validate(invitation))
    return pending


@returns_result
async def revoke_invitation(
    ctx: MemberContext, invitation_id: uuid.UUID, session: AsyncSession
) -> None:
    if not policy.can_invite_members(ctx.role):
        raise NotAuthorized("Only owners and admins can revoke invitations")

    invitation = await session.get(Invitation, invitation_id)
    if (
        invitation is None
        or invitation.organization_id != ctx.org_id
        or invitation.status != InvitationStatus.PENDING.value
    ):
        raise NotFound("Invitation not found")

    await session.delete(invitation)
    await session.flush()
    log.info("invitation.revoked", invitation_id=str(invitation_id), actor=str(ctx.user_id))


# ---------------------------------------------------------------------------
# Invitee side
# ---------------------------------------------------------------------------

async def _find_by_token(
    token: str, session: AsyncSession, *, pending_only: bool = False
) -> Optional[Invitation]:
    stmt = select(Invitation).where(Invitation.token == token)
    if pending_only:
        stmt = stmt.where(Invitation.status == InvitationStatus.PENDING.value)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _organization_name(org_id: uuid.UUID, session: AsyncSession) -> str:
    try:
        org = await session.get(Organization, org_id)
    except SQLAlchemyError as exc:
        log.warning("invitation.org_lookup_failed", org_id=str(org_id), error=str(exc))
        return UNKNOWN_ORGANIZATION
    return org.name if org else UNKNOWN_ORGANIZATION


async def get_invitation(token: str, session: AsyncSession) -> InvitationView:
    """The invitation landing view, with organization and inviter names."""
    invitation = await _find_by_token(token, session)
    if invitation is None:
        raise NotFound("Invitation not found")
    await _expire_if_stale(invitation, session)

    profiles = await load_profiles([invitation.invited_by], session)
    inviter = profiles.get(invitation.invited_by)
    return InvitationView(
        **InvitationRead.model_validate(invitation).model_dump(),
        organization_name=await _organization_name(invitation.organization_id, session),
        inviter_name=(inviter.full_name or UNKNOWN_USER) if inviter else UNKNOWN_USER,
    )


async def _mark_invitation_accepted(invitation: Invitation, session: AsyncSession) -> None:
    """Second write of acceptance. Failure leaves the membership in place."""
    invitation_id = invitation.id
    try:
        _transition(invitation, InvitationStatus.ACCEPTED)
        invitation.accepted_at = utcnow()
        session.add(invitation)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        log.warning(
            "invitation.mark_accepted_failed",
            invitation_id=str(invitation_id),
            error=str(exc),
        )


@returns_result
async def accept_invitation(
    token: str, user: SessionUser, session: AsyncSession
) -> MemberRead:
    invitation = await _find_by_token(token, session, pending_only=True)
    if invitation is None:
        raise NotFound("Invitation not found or no longer pending")

    if await _expire_if_stale(invitation, session):
        raise Expired()

    if normalize_email(user.email) != normalize_email(invitation.email):
        raise EmailMismatch()

    existing = await session.execute(
        select(Membership.id).where(
            Membership.organization_id == invitation.organization_id,
            Membership.user_id == user.id,
        )
    )
    if existing.first() is not None:
        raise AlreadyMember()

    membership = Membership(
        user_id=user.id,
        organization_id=invitation.organization_id,
        role=invitation.role,
    )
    session.add(membership)
    await session.commit()
    log.info(
        "invitation.accepted",
        invitation_id=str(invitation.id),
        org_id=str(invitation.organization_id),
        user_id=str(user.id),
        role=invitation.role,
    )

    member = MemberRead(
        id=membership.id,
        user_id=membership.user_id,
        organization_id=membership.organization_id,
        role=membership.role,
        full_name=UNKNOWN_USER,
        created_at=membership.created_at,
    )
    profiles = await load_profiles([user.id], session)
    if user.id in profiles and profiles[user.id].full_name:
        member.full_name = profiles[user.id].full_name

    await _mark_invitation_accepted(invitation, session)
    return member


async def decline_invitation(token: str, session: AsyncSession) -> None:
    """Declining only navigates away; the invitation is left as it was."""
    invitation = await _find_by_token(token, session)
    if invitation is None:
        raise NotFound("Invitation not found")
    log.info("invitation.declined", invitation_id=str(invitation.id))
