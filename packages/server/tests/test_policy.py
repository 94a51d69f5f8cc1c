"""
Tests for the role policy.

Covers:
- Manager-only org actions (invite, projects, task management)
- Owner-only org deletion
- Role updates: never to owner, never on self, admins only on members
- Assignment and status-change eligibility
- Unknown or absent roles denied everything
"""

from __future__ import annotations

import itertools

import pytest

from taskflow.core import policy
from taskflow_shared.schemas.common import Role

ALL_ROLES = [Role.OWNER, Role.ADMIN, Role.MEMBER]
UNKNOWN = [None, "superuser", ""]


class TestOrganizationActions:
    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_invite_requires_manager(self, role):
        assert policy.can_invite_members(role) == (role != Role.MEMBER)

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_project_create_and_delete_require_manager(self, role):
        expected = role in (Role.OWNER, Role.ADMIN)
        assert policy.can_create_project(role) == expected
        assert policy.can_delete_project(role) == expected

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_only_owner_deletes_organization(self, role):
        assert policy.can_delete_organization(role) == (role == Role.OWNER)

    def test_stored_role_strings_are_accepted(self):
        assert policy.can_invite_members("admin")
        assert not policy.can_invite_members("member")

    @pytest.mark.parametrize("role", UNKNOWN)
    def test_unknown_roles_are_denied(self, role):
        assert not policy.can_view_organization(role)
        assert not policy.can_invite_members(role)
        assert not policy.can_create_project(role)
        assert not policy.can_delete_organization(role)
        assert not policy.can_manage_tasks(role)
        assert not policy.can_assign_task(role, is_self=True)
        assert not policy.can_remove_task_assignment(role, is_self=True)
        assert not policy.can_change_task_status(role, is_assigned=True)

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_any_member_can_view(self, role):
        assert policy.can_view_organization(role)


class TestMemberRoleUpdates:
    @pytest.mark.parametrize(
        "actor,target,is_self",
        list(itertools.product(ALL_ROLES, ALL_ROLES, [True, False])),
    )
    def test_never_grants_owner(self, actor, target, is_self):
        assert not policy.can_update_member_role(actor, target, is_self, Role.OWNER)

    @pytest.mark.parametrize(
        "actor,target,new_role",
        list(itertools.product(ALL_ROLES, ALL_ROLES, ALL_ROLES)),
    )
    def test_never_on_self(self, actor, target, new_role):
        assert not policy.can_update_member_role(actor, target, True, new_role)

    def test_member_cannot_change_roles(self):
        assert not policy.can_update_member_role(Role.MEMBER, Role.MEMBER, False, Role.ADMIN)

    def test_admin_can_promote_member(self):
        assert policy.can_update_member_role(Role.ADMIN, Role.MEMBER, False, Role.ADMIN)

    @pytest.mark.parametrize("target", [Role.ADMIN, Role.OWNER])
    def test_admin_cannot_touch_managers(self, target):
        assert not policy.can_update_member_role(Role.ADMIN, target, False, Role.MEMBER)

    @pytest.mark.parametrize(
        "target,new_role",
        [(Role.MEMBER, Role.ADMIN), (Role.ADMIN, Role.MEMBER), (Role.MEMBER, Role.MEMBER)],
    )
    def test_owner_manages_members_and_admins(self, target, new_role):
        assert policy.can_update_member_role(Role.OWNER, target, False, new_role)

    def test_owner_cannot_demote_another_owner(self):
        assert not policy.can_update_member_role(Role.OWNER, Role.OWNER, False, Role.ADMIN)

    def test_assignable_roles_exclude_current(self):
        assert policy.assignable_roles(Role.OWNER, Role.MEMBER, False) == [Role.ADMIN]
        assert policy.assignable_roles(Role.OWNER, Role.ADMIN, False) == [Role.MEMBER]
        assert policy.assignable_roles(Role.ADMIN, Role.MEMBER, False) == [Role.ADMIN]

    def test_assignable_roles_empty_when_not_allowed(self):
        assert policy.assignable_roles(Role.ADMIN, Role.ADMIN, False) == []
        assert policy.assignable_roles(Role.MEMBER, Role.MEMBER, False) == []
        assert policy.assignable_roles(Role.OWNER, Role.OWNER, True) == []


class TestTaskActions:
    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_manage_and_delete_require_manager(self, role):
        expected = role != Role.MEMBER
        assert policy.can_manage_tasks(role) == expected
        assert policy.can_delete_task(role) == expected

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_anyone_can_take_a_task(self, role):
        assert policy.can_assign_task(role, is_self=True)

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_assigning_others_requires_manager(self, role):
        assert policy.can_assign_task(role, is_self=False) == (role != Role.MEMBER)

    @pytest.mark.parametrize("role", ALL_ROLES)
    def test_remove_assignment(self, role):
        assert policy.can_remove_task_assignment(role, is_self=True)
        assert policy.can_remove_task_assignment(role, is_self=False) == (role != Role.MEMBER)

    @pytest.mark.parametrize(
        "role,is_assigned,expected",
        [
            (Role.OWNER, False, True),
            (Role.ADMIN, False, True),
            (Role.MEMBER, False, False),
            (Role.MEMBER, True, True),
        ],
    )
    def test_change_status(self, role, is_assigned, expected):
        assert policy.can_change_task_status(role, is_assigned) == expected
