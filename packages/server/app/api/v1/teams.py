"""
Team API endpoints.

GET  /api/v1/teams                     - Teams in the resolved org
POST /api/v1/teams                     - Create a team (owners/admins)
GET  /api/v1/teams/{team_id}/members   - Members of one team
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends

from app.core.session import get_current_session
from app.services import teams as team_service
from app.services.organizations import resolve_organization_id
from app.services.store import IdentityStore, get_store
from teamhub_shared.schemas.auth import SessionDescriptor
from teamhub_shared.schemas.common import APIResponse
from teamhub_shared.schemas.teams import TeamCreateRequest, TeamRead

router = APIRouter()


@router.get("", response_model=APIResponse)
async def list_teams(
    organization_id: Optional[uuid.UUID] = None,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    org_id = await resolve_organization_id(store, session, organization_id)
    items = await team_service.list_teams(store, org_id)
    return APIResponse(
        success=True,
        message="Teams fetched successfully",
        data=[item.model_dump(mode="json") for item in items],
    )


@router.post("", response_model=APIResponse, status_code=201)
async def create_team(
    body: TeamCreateRequest,
    organization_id: Optional[uuid.UUID] = None,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    org_id = await resolve_organization_id(store, session, organization_id)
    team = await team_service.create_team(store, session, org_id, body.name, body.description)
    data = TeamRead(
        id=team.id,
        organization_id=team.organization_id,
        name=team.name,
        slug=team.slug,
        description=team.description,
        created_by=team.created_by,
        created_at=team.created_at,
        updated_at=team.updated_at,
    )
    return APIResponse(
        success=True,
        message="Team created successfully",
        data=data.model_dump(mode="json"),
    )


@router.get("/{team_id}/members", response_model=APIResponse)
async def list_team_members(
    team_id: uuid.UUID,
    organization_id: Optional[uuid.UUID] = None,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    org_id = await resolve_organization_id(store, session, organization_id)
    items = await team_service.list_team_members(store, org_id, team_id)
    return APIResponse(
        success=True,
        message="Team members fetched successfully",
        data=[item.model_dump(mode="json") for item in items],
    )
