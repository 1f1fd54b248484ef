"""
Team service.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.permissions import Action, require
from app.models.team import Team
from app.services.activity import record_activity
from app.services.organizations import slugify
from app.services.store import IdentityStore
from teamhub_shared.schemas.auth import SessionDescriptor
from teamhub_shared.schemas.organizations import ProfileSummary
from teamhub_shared.schemas.teams import TeamMemberRead, TeamRead

log = structlog.get_logger()


async def create_team(
    store: IdentityStore,
    session: SessionDescriptor,
    organization_id: uuid.UUID,
    name: str,
    description: Optional[str] = None,
) -> Team:
    require(session.role, Action.CREATE_TEAM)

    name = (name or "").strip()
    if not name:
        raise ValidationError("Team name is required")
    if await store.team_name_taken(organization_id, name):
        raise ConflictError("A team with this name already exists in your organization")

    team = await store.insert_team(
        organization_id,
        name,
        slugify(name),
        (description or "").strip() or None,
        session.profile_id,
    )
    log.info("team.created", team_id=str(team.id), organization_id=str(organization_id))
    await record_activity(
        store,
        organization_id=organization_id,
        actor_id=session.profile_id,
        action=f"Created team {team.name}",
        action_type="team.created",
        details={"team_id": str(team.id), "team_name": team.name},
    )
    return team


async def list_teams(store: IdentityStore, organization_id: uuid.UUID) -> list[TeamRead]:
    teams = await store.list_teams(organization_id)
    creators = await store.get_profiles(list({team.created_by for team in teams}))
    items = []
    for team in teams:
        creator = creators.get(team.created_by)
        items.append(
            TeamRead(
                id=team.id,
                organization_id=team.organization_id,
                name=team.name,
                slug=team.slug,
                description=team.description,
                created_by=team.created_by,
                created_at=team.created_at,
                updated_at=team.updated_at,
                creator=ProfileSummary(id=creator.id, full_name=creator.full_name) if creator else None,
            )
        )
    return items


async def list_team_members(
    store: IdentityStore, organization_id: uuid.UUID, team_id: uuid.UUID
) -> list[TeamMemberRead]:
    team = await store.get_team(organization_id, team_id)
    if team is None:
        raise NotFoundError("Team not found")

    members = await store.list_team_members(team.id)
    profiles = await store.get_profiles([m.user_id for m in members])
    return [
        TeamMemberRead(
            id=m.id,
            team_id=m.team_id,
            user_id=m.user_id,
            role=m.role,
            added_by=m.added_by,
            created_at=m.created_at,
            profile=(
                ProfileSummary(id=m.user_id, full_name=profiles[m.user_id].full_name)
                if m.user_id in profiles
                else None
            ),
        )
        for m in members
    ]
