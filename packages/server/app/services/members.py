"""
Organization member service: listing and role changes.
"""

from __future__ import annotations

import uuid

import structlog

from app.core.errors import NotFoundError
from app.core.permissions import Action, require
from app.models.user_org import OrganizationMember
from app.services.activity import record_activity
from app.services.store import IdentityStore
from teamhub_shared.schemas.auth import SessionDescriptor
from teamhub_shared.schemas.common import Role
from teamhub_shared.schemas.organizations import MemberRead, ProfileSummary

log = structlog.get_logger()


def to_member_read(member: OrganizationMember, full_name: str | None = None) -> MemberRead:
    return MemberRead(
        id=member.id,
        organization_id=member.organization_id,
        user_id=member.user_id,
        role=Role(member.role),
        created_at=member.created_at,
        profile=ProfileSummary(id=member.user_id, full_name=full_name) if full_name else None,
    )


async def list_members(store: IdentityStore, organization_id: uuid.UUID) -> list[MemberRead]:
    members = await store.list_members(organization_id)
    profiles = await store.get_profiles([m.user_id for m in members])
    return [
        to_member_read(m, profiles[m.user_id].full_name if m.user_id in profiles else None)
        for m in members
    ]


async def update_member_role(
    store: IdentityStore,
    session: SessionDescriptor,
    organization_id: uuid.UUID,
    member_id: uuid.UUID,
    new_role: Role,
) -> tuple[OrganizationMember, bool]:
    """Change a member's role.

    Returns the member and whether anything changed; asking for the role a
    member already has is a successful no-op that writes nothing.
    """
    require(session.role, Action.CHANGE_ROLE)

    member = await store.get_member(organization_id, member_id)
    if member is None:
        raise NotFoundError("Member not found in this organization")

    current_role = Role(member.role)
    require(
        session.role,
        Action.CHANGE_ROLE,
        target_role=current_role,
        new_role=new_role,
        is_self=member.user_id == session.profile_id,
    )

    if current_role == new_role:
        return member, False

    member = await store.update_member_role(member, new_role.value)
    log.info(
        "member.role_changed",
        member_id=str(member.id),
        old_role=current_role.value,
        new_role=new_role.value,
    )
    await record_activity(
        store,
        organization_id=organization_id,
        actor_id=session.profile_id,
        action=f"Changed role from {current_role.value} to {new_role.value}",
        action_type="role.changed",
        details={
            "member_id": str(member.id),
            "user_id": str(member.user_id),
            "old_role": current_role.value,
            "new_role": new_role.value,
        },
    )
    return member, True
