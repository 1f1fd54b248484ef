"""
Organization API endpoints.

GET   /api/v1/organizations                      - Orgs the caller belongs to
POST  /api/v1/organizations                      - Create an org (owners only)
GET   /api/v1/organization/members               - Members of the resolved org
PATCH /api/v1/organization/members/{member_id}   - Change a member's role
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Response

from app.core.session import get_current_session, set_session_cookies
from app.services import members as member_service
from app.services import organizations as org_service
from app.services.store import IdentityStore, get_store
from teamhub_shared.schemas.auth import SessionDescriptor
from teamhub_shared.schemas.common import APIResponse
from teamhub_shared.schemas.organizations import (
    MemberRoleUpdateRequest,
    OrganizationRead,
    OrgCreateRequest,
)

router = APIRouter()


@router.get("/organizations", response_model=APIResponse)
async def list_organizations(
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    items = await org_service.list_user_organizations(store, session)
    if not items:
        return APIResponse(success=True, message="No organizations found", data=[])
    return APIResponse(
        success=True,
        message="Organizations fetched successfully",
        data=[item.model_dump(mode="json") for item in items],
    )


@router.post("/organizations", response_model=APIResponse, status_code=201)
async def create_organization(
    body: OrgCreateRequest,
    response: Response,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    """Create an organization. The session switches to it."""
    org = await org_service.create_organization(store, session, body.name)
    set_session_cookies(response, session.model_copy(update={"organization_id": org.id}))
    return APIResponse(
        success=True,
        message="Organization created successfully",
        data=OrganizationRead.model_validate(org).model_dump(mode="json"),
    )


@router.get("/organization/members", response_model=APIResponse)
async def list_members(
    organization_id: Optional[uuid.UUID] = None,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    org_id = await org_service.resolve_organization_id(store, session, organization_id)
    items = await member_service.list_members(store, org_id)
    return APIResponse(
        success=True,
        message="Organization members fetched successfully",
        data=[item.model_dump(mode="json") for item in items],
    )


@router.patch("/organization/members/{member_id}", response_model=APIResponse)
async def update_member_role(
    member_id: uuid.UUID,
    body: MemberRoleUpdateRequest,
    organization_id: Optional[uuid.UUID] = None,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    org_id = await org_service.resolve_organization_id(store, session, organization_id)
    member, changed = await member_service.update_member_role(
        store, session, org_id, member_id, body.role
    )
    return APIResponse(
        success=True,
        message="Member role updated successfully" if changed else "Member already has this role",
        data=member_service.to_member_read(member).model_dump(mode="json"),
    )
