"""
Role policy: who may do what inside an organization.

Every predicate is pure and total. Unknown roles (including ``None`` for a
non-member) are denied everything; nothing here raises. Callers that get a
``False`` must not send the mutating request to the store.

Roles are ordered owner > admin > member. Owner and admin are "managers".
"""

from __future__ import annotations

from typing import Optional, Union

from taskflow_shared.schemas.common import MANAGER_ROLES, ROLE_RANK, Role

RoleLike = Union[Role, str, None]


def as_role(value: RoleLike) -> Optional[Role]:
    """Coerce a stored role string to Role; anything unrecognised becomes None."""
    if value is None or isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def outranks(actor: RoleLike, target: RoleLike) -> bool:
    a, t = as_role(actor), as_role(target)
    if a is None or t is None:
        return False
    return ROLE_RANK[a] > ROLE_RANK[t]


def is_manager(role: RoleLike) -> bool:
    return as_role(role) in MANAGER_ROLES


# ---------------------------------------------------------------------------
# Organization-level actions
# ---------------------------------------------------------------------------

def can_view_organization(actor: RoleLike) -> bool:
    return as_role(actor) is not None


def can_invite_members(actor: RoleLike) -> bool:
    return is_manager(actor)


def can_create_project(actor: RoleLike) -> bool:
    return is_manager(actor)


def can_delete_project(actor: RoleLike) -> bool:
    return is_manager(actor)


def can_delete_organization(actor: RoleLike) -> bool:
    return as_role(actor) == Role.OWNER


def can_update_member_role(
    actor: RoleLike,
    target: RoleLike,
    is_target_self: bool,
    new_role: RoleLike,
) -> bool:
    """Whether ``actor`` may move a member currently holding ``target`` to ``new_role``.

    Ownership can never be granted or transferred through this path, and
    nobody edits their own role. Admins may only act on plain members.
    """
    actor, target, new_role = as_role(actor), as_role(target), as_role(new_role)
    if not is_manager(actor):
        return False
    if is_target_self:
        return False
    if new_role is None or new_role == Role.OWNER:
        return False
    # Admins act on members only, owners on members and admins
    return outranks(actor, target)


def assignable_roles(actor: RoleLike, target: RoleLike, is_target_self: bool) -> list[Role]:
    """Roles the actor may move the target to, excluding the one it already holds."""
    current = as_role(target)
    return [
        role
        for role in (Role.MEMBER, Role.ADMIN)
        if role != current and can_update_member_role(actor, target, is_target_self, role)
    ]


# ---------------------------------------------------------------------------
# Task-level actions
# ---------------------------------------------------------------------------

def can_manage_tasks(actor: RoleLike) -> bool:
    """Create, edit and move any task."""
    return is_manager(actor)


def can_delete_task(actor: RoleLike) -> bool:
    return is_manager(actor)


def can_assign_task(actor: RoleLike, is_self: bool) -> bool:
    """Any member may take a task; only managers hand tasks to someone else."""
    if as_role(actor) is None:
        return False
    return is_self or can_manage_tasks(actor)


def can_remove_task_assignment(actor: RoleLike, is_self: bool) -> bool:
    """Anyone may drop their own assignment; managers may remove anyone's."""
    if as_role(actor) is None:
        return False
    return is_self or can_manage_tasks(actor)


def can_change_task_status(actor: RoleLike, is_assigned: bool) -> bool:
    """Drag/drop eligibility.

    Must be evaluated with role and assignment freshly read from the store,
    not from a cached board.
    """
    if as_role(actor) is None:
        return False
    return can_manage_tasks(actor) or is_assigned
