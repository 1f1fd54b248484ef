"""
Identity store adapter.

Thin typed access to profiles, organizations, memberships, teams, invites
and the activity log. Every write commits on its own so that a provisioning
saga can compensate committed steps one by one; unique-constraint
violations come back as ``ConflictError``.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import Depends
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import commit_or_raise, get_session
from app.models.activity import ActivityLogEntry
from app.models.base import utcnow
from app.models.invite import Invite
from app.models.organization import Organization
from app.models.team import Team, TeamMember
from app.models.user import Profile
from app.models.user_org import OrganizationMember

log = structlog.get_logger()


class IdentityStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _save(self, row, conflict_message: str | None = None):
        self.session.add(row)
        await commit_or_raise(self.session, conflict_message)
        # Detached rows keep their loaded state when a later write rolls back.
        self.session.expunge(row)
        return row

    async def _remove(self, model, row_id: uuid.UUID) -> None:
        row = await self.session.get(model, row_id)
        if row is None:
            return
        await self.session.delete(row)
        await commit_or_raise(self.session)

    # -- profiles ----------------------------------------------------------

    async def get_profile(self, profile_id: uuid.UUID) -> Optional[Profile]:
        return await self.session.get(Profile, profile_id)

    async def get_profiles(self, profile_ids: list[uuid.UUID]) -> dict[uuid.UUID, Profile]:
        if not profile_ids:
            return {}
        result = await self.session.execute(select(Profile).where(Profile.id.in_(profile_ids)))
        return {profile.id: profile for profile in result.scalars().all()}

    # -- organizations -----------------------------------------------------

    async def get_organization(self, organization_id: uuid.UUID) -> Optional[Organization]:
        return await self.session.get(Organization, organization_id)

    async def slug_taken(self, slug: str) -> bool:
        result = await self.session.execute(
            select(Organization.id).where(Organization.slug == slug)
        )
        return result.first() is not None

    async def insert_organization(self, name: str, slug: str, owner_id: uuid.UUID) -> Organization:
        return await self._save(
            Organization(name=name, slug=slug, owner_id=owner_id),
            "Organization with this name already exists",
        )

    async def delete_organization(self, organization_id: uuid.UUID) -> None:
        await self._remove(Organization, organization_id)

    async def list_organizations_for(self, profile_id: uuid.UUID) -> list[tuple[Organization, str]]:
        result = await self.session.execute(
            select(Organization, OrganizationMember.role)
            .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
            .where(OrganizationMember.user_id == profile_id)
            .order_by(Organization.created_at)
        )
        return list(result.all())

    # -- organization members ----------------------------------------------

    async def get_membership(
        self, organization_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[OrganizationMember]:
        result = await self.session.execute(
            select(OrganizationMember).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def memberships_for(self, user_id: uuid.UUID) -> list[OrganizationMember]:
        """Memberships of one identity, oldest first."""
        result = await self.session.execute(
            select(OrganizationMember)
            .where(OrganizationMember.user_id == user_id)
            .order_by(OrganizationMember.created_at)
        )
        return list(result.scalars().all())

    async def get_member(
        self, organization_id: uuid.UUID, member_id: uuid.UUID
    ) -> Optional[OrganizationMember]:
        member = await self.session.get(OrganizationMember, member_id)
        if member is None or member.organization_id != organization_id:
            return None
        return member

    async def list_members(self, organization_id: uuid.UUID) -> list[OrganizationMember]:
        result = await self.session.execute(
            select(OrganizationMember)
            .where(OrganizationMember.organization_id == organization_id)
            .order_by(OrganizationMember.created_at)
        )
        return list(result.scalars().all())

    async def insert_membership(
        self, organization_id: uuid.UUID, user_id: uuid.UUID, role: str
    ) -> OrganizationMember:
        return await self._save(
            OrganizationMember(organization_id=organization_id, user_id=user_id, role=role),
            "User is already a member of this organization",
        )

    async def update_member_role(self, member: OrganizationMember, role: str) -> OrganizationMember:
        member.role = role
        return await self._save(member)

    async def delete_membership(self, member_id: uuid.UUID) -> None:
        await self._remove(OrganizationMember, member_id)

    # -- teams -------------------------------------------------------------

    async def get_team(self, organization_id: uuid.UUID, team_id: uuid.UUID) -> Optional[Team]:
        team = await self.session.get(Team, team_id)
        if team is None or team.organization_id != organization_id:
            return None
        return team

    async def team_name_taken(self, organization_id: uuid.UUID, name: str) -> bool:
        result = await self.session.execute(
            select(Team.id).where(
                Team.organization_id == organization_id,
                func.lower(Team.name) == name.lower(),
            )
        )
        return result.first() is not None

    async def insert_team(
        self,
        organization_id: uuid.UUID,
        name: str,
        slug: str,
        description: Optional[str],
        created_by: uuid.UUID,
    ) -> Team:
        return await self._save(
            Team(
                organization_id=organization_id,
                name=name,
                slug=slug,
                description=description,
                created_by=created_by,
            ),
            "A team with this name already exists in your organization",
        )

    async def list_teams(self, organization_id: uuid.UUID) -> list[Team]:
        result = await self.session.execute(
            select(Team).where(Team.organization_id == organization_id).order_by(Team.created_at)
        )
        return list(result.scalars().all())

    async def insert_team_member(
        self, team_id: uuid.UUID, user_id: uuid.UUID, role: str, added_by: uuid.UUID
    ) -> TeamMember:
        return await self._save(
            TeamMember(team_id=team_id, user_id=user_id, role=role, added_by=added_by),
            "User is already a member of this team",
        )

    async def delete_team_member(self, team_member_id: uuid.UUID) -> None:
        await self._remove(TeamMember, team_member_id)

    async def list_team_members(self, team_id: uuid.UUID) -> list[TeamMember]:
        result = await self.session.execute(
            select(TeamMember).where(TeamMember.team_id == team_id).order_by(TeamMember.created_at)
        )
        return list(result.scalars().all())

    # -- invites -----------------------------------------------------------

    async def pending_invite_exists(self, organization_id: uuid.UUID, email: str) -> bool:
        result = await self.session.execute(
            select(Invite.id).where(
                Invite.organization_id == organization_id,
                Invite.email == email,
                Invite.status == "pending",
            )
        )
        return result.first() is not None

    async def insert_invite(self, invite: Invite) -> Invite:
        return await self._save(invite, "Pending invite already exists for this email")

    async def find_invite(self, token: str, email: str) -> Optional[Invite]:
        result = await self.session.execute(
            select(Invite).where(Invite.token == token, Invite.email == email)
        )
        return result.scalar_one_or_none()

    async def get_invite(self, organization_id: uuid.UUID, invite_id: uuid.UUID) -> Optional[Invite]:
        invite = await self.session.get(Invite, invite_id)
        if invite is None or invite.organization_id != organization_id:
            return None
        return invite

    async def list_pending_invites(self, organization_id: uuid.UUID) -> list[Invite]:
        result = await self.session.execute(
            select(Invite)
            .where(Invite.organization_id == organization_id, Invite.status == "pending")
            .order_by(Invite.created_at.desc())
        )
        return list(result.scalars().all())

    async def stale_pending_invites(self) -> list[Invite]:
        result = await self.session.execute(
            select(Invite).where(Invite.status == "pending", Invite.expires_at < utcnow())
        )
        return list(result.scalars().all())

    async def set_invite_status(self, invite: Invite, status: str) -> Invite:
        invite.status = status
        return await self._save(invite)

    # -- activity log ------------------------------------------------------

    async def append_activity(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        return await self._save(entry)

    async def list_activity(self, organization_id: uuid.UUID) -> list[ActivityLogEntry]:
        result = await self.session.execute(
            select(ActivityLogEntry)
            .where(ActivityLogEntry.organization_id == organization_id)
            .order_by(ActivityLogEntry.created_at.desc())
        )
        return list(result.scalars().all())


async def get_store(session: AsyncSession = Depends(get_session)) -> IdentityStore:
    return IdentityStore(session)
