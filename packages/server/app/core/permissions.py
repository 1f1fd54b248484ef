"""
Authorization engine.

A pure decision table: ``authorize`` looks at the actor's role, the action
and (for role changes) the target's current and requested role, and returns
a ``Decision``. No I/O happens here; services call ``require`` and let the
``AuthorizationError`` propagate.

Role values are validated before they get here; an unknown role is a
request validation failure, not a permission decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.core.errors import AuthorizationError
from teamhub_shared.schemas.common import InviteRole, Role


class Action(str, Enum):
    CREATE_ORGANIZATION = "organization.create"
    CREATE_TEAM = "team.create"
    INVITE_ADMIN = "invite.create.admin"
    INVITE_MEMBER = "invite.create.member"
    VIEW_INVITES = "invite.view"
    REVOKE_INVITE = "invite.revoke"
    CHANGE_ROLE = "member.change_role"


OWNER_ONLY = frozenset({Role.OWNER})
OWNER_OR_ADMIN = frozenset({Role.OWNER, Role.ADMIN})

ACTION_ROLES: dict[Action, frozenset[Role]] = {
    Action.CREATE_ORGANIZATION: OWNER_ONLY,
    Action.CREATE_TEAM: OWNER_OR_ADMIN,
    Action.INVITE_ADMIN: OWNER_ONLY,
    Action.INVITE_MEMBER: OWNER_OR_ADMIN,
    Action.VIEW_INVITES: OWNER_OR_ADMIN,
    Action.REVOKE_INVITE: OWNER_OR_ADMIN,
    Action.CHANGE_ROLE: OWNER_OR_ADMIN,
}

# (current role, requested role) pairs each actor role may apply to someone else.
# Owner is assigned once at organization creation and never through a role change.
ROLE_TRANSITIONS: dict[Role, frozenset[tuple[Role, Role]]] = {
    Role.OWNER: frozenset({
        (Role.ADMIN, Role.ADMIN),
        (Role.ADMIN, Role.MEMBER),
        (Role.MEMBER, Role.ADMIN),
        (Role.MEMBER, Role.MEMBER),
    }),
    Role.ADMIN: frozenset({
        (Role.MEMBER, Role.ADMIN),
        (Role.MEMBER, Role.MEMBER),
    }),
    Role.MEMBER: frozenset(),
}

DENIAL_MESSAGES: dict[Action, str] = {
    Action.CREATE_ORGANIZATION: "Only owners can create organizations",
    Action.CREATE_TEAM: "Only owners and admins can create teams",
    Action.INVITE_ADMIN: "Only owners and admins can send invites",
    Action.INVITE_MEMBER: "Only owners and admins can send invites",
    Action.VIEW_INVITES: "Only owners and admins can view invites",
    Action.REVOKE_INVITE: "Only owners and admins can revoke invites",
    Action.CHANGE_ROLE: "Only owners and admins can change roles",
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


def invite_action(invite_role: InviteRole) -> Action:
    if invite_role.value == Role.ADMIN.value:
        return Action.INVITE_ADMIN
    return Action.INVITE_MEMBER


def _deny_action(actor_role: Role, action: Action) -> Decision:
    if action == Action.INVITE_ADMIN and actor_role == Role.ADMIN:
        return deny("Admins cannot invite other admins, can only invite members")
    return deny(DENIAL_MESSAGES[action])


def authorize(
    actor_role: Role,
    action: Action,
    *,
    target_role: Optional[Role] = None,
    new_role: Optional[Role] = None,
    is_self: bool = False,
) -> Decision:
    """Evaluate the decision table for a single request."""
    actor_role = Role(actor_role)
    if actor_role not in ACTION_ROLES[action]:
        return _deny_action(actor_role, action)

    if action != Action.CHANGE_ROLE:
        return ALLOW

    if is_self:
        return deny("You cannot change your own role")
    # Without a target this is only the actor gate, checked before the lookup.
    if target_role is None or new_role is None:
        return ALLOW

    if (Role(target_role), Role(new_role)) in ROLE_TRANSITIONS[actor_role]:
        return ALLOW
    if new_role == Role.OWNER:
        return deny("The owner role cannot be assigned")
    if target_role == Role.OWNER:
        return deny("The organization owner's role cannot be changed")
    return deny("Admins can only promote members to admin")


def require(actor_role: Role, action: Action, **kwargs) -> None:
    """Raise ``AuthorizationError`` unless ``authorize`` allows the action."""
    decision = authorize(actor_role, action, **kwargs)
    if not decision:
        raise AuthorizationError(decision.reason)
