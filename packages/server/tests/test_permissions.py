"""
Unit tests for the authorization decision table.
"""

from __future__ import annotations

import pytest

from app.core.errors import AuthorizationError
from app.core.permissions import Action, authorize, invite_action, require
from teamhub_shared.schemas.common import InviteRole, Role

OWNER, ADMIN, MEMBER = Role.OWNER, Role.ADMIN, Role.MEMBER


class TestActionGates:
    @pytest.mark.parametrize(
        "role,action,allowed",
        [
            (OWNER, Action.CREATE_ORGANIZATION, True),
            (ADMIN, Action.CREATE_ORGANIZATION, False),
            (MEMBER, Action.CREATE_ORGANIZATION, False),
            (OWNER, Action.CREATE_TEAM, True),
            (ADMIN, Action.CREATE_TEAM, True),
            (MEMBER, Action.CREATE_TEAM, False),
            (OWNER, Action.INVITE_ADMIN, True),
            (ADMIN, Action.INVITE_ADMIN, False),
            (MEMBER, Action.INVITE_ADMIN, False),
            (OWNER, Action.INVITE_MEMBER, True),
            (ADMIN, Action.INVITE_MEMBER, True),
            (MEMBER, Action.INVITE_MEMBER, False),
            (ADMIN, Action.VIEW_INVITES, True),
            (MEMBER, Action.VIEW_INVITES, False),
            (ADMIN, Action.REVOKE_INVITE, True),
            (MEMBER, Action.REVOKE_INVITE, False),
        ],
    )
    def test_gate(self, role, action, allowed):
        assert bool(authorize(role, action)) is allowed

    def test_admin_inviting_admin_reason(self):
        decision = authorize(ADMIN, Action.INVITE_ADMIN)
        assert not decision
        assert decision.reason == "Admins cannot invite other admins, can only invite members"

    def test_member_inviting_reason(self):
        assert authorize(MEMBER, Action.INVITE_MEMBER).reason == "Only owners and admins can send invites"

    def test_invite_action_mapping(self):
        assert invite_action(InviteRole.ADMIN) == Action.INVITE_ADMIN
        assert invite_action(InviteRole.MEMBER) == Action.INVITE_MEMBER

    def test_accepts_plain_strings(self):
        assert authorize("admin", Action.CREATE_TEAM)


class TestRoleChanges:
    @pytest.mark.parametrize(
        "target,new",
        [(ADMIN, MEMBER), (MEMBER, ADMIN), (ADMIN, ADMIN), (MEMBER, MEMBER)],
    )
    def test_owner_may_move_admins_and_members(self, target, new):
        assert authorize(OWNER, Action.CHANGE_ROLE, target_role=target, new_role=new)

    def test_admin_may_promote_member(self):
        assert authorize(ADMIN, Action.CHANGE_ROLE, target_role=MEMBER, new_role=ADMIN)

    def test_admin_cannot_demote_admin(self):
        decision = authorize(ADMIN, Action.CHANGE_ROLE, target_role=ADMIN, new_role=MEMBER)
        assert not decision
        assert decision.reason == "Admins can only promote members to admin"

    def test_member_cannot_change_roles(self):
        decision = authorize(MEMBER, Action.CHANGE_ROLE, target_role=MEMBER, new_role=ADMIN)
        assert decision.reason == "Only owners and admins can change roles"

    @pytest.mark.parametrize("actor", [OWNER, ADMIN])
    def test_nobody_assigns_owner(self, actor):
        decision = authorize(actor, Action.CHANGE_ROLE, target_role=MEMBER, new_role=OWNER)
        assert decision.reason == "The owner role cannot be assigned"

    def test_owner_role_is_fixed(self):
        decision = authorize(OWNER, Action.CHANGE_ROLE, target_role=OWNER, new_role=ADMIN)
        assert decision.reason == "The organization owner's role cannot be changed"

    @pytest.mark.parametrize("actor", [OWNER, ADMIN])
    def test_self_change_denied(self, actor):
        decision = authorize(actor, Action.CHANGE_ROLE, target_role=actor, new_role=MEMBER, is_self=True)
        assert decision.reason == "You cannot change your own role"

    @pytest.mark.parametrize("actor", [OWNER, ADMIN])
    def test_actor_gate_without_target(self, actor):
        assert authorize(actor, Action.CHANGE_ROLE)
        assert authorize(actor, Action.CHANGE_ROLE, target_role=MEMBER)
        require(actor, Action.CHANGE_ROLE)

    def test_member_fails_actor_gate(self):
        decision = authorize(MEMBER, Action.CHANGE_ROLE)
        assert decision.reason == "Only owners and admins can change roles"


class TestRequire:
    def test_allowed_returns_none(self):
        assert require(OWNER, Action.CREATE_ORGANIZATION) is None

    def test_denied_raises_403(self):
        with pytest.raises(AuthorizationError) as exc:
            require(MEMBER, Action.CREATE_TEAM)
        assert exc.value.status_code == 403
        assert exc.value.message == "Only owners and admins can create teams"
