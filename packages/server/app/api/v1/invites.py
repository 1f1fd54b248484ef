"""
Invitation API endpoints.

GET    /api/v1/invites                 - Pending invites of the resolved org
POST   /api/v1/invites                 - Invite and provision a new user
GET    /api/v1/invites/accept          - Redeem an emailed invite link
DELETE /api/v1/invites/{invite_id}     - Revoke a pending invite
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from app.core.config import get_settings
from app.core.credentials import CredentialIssuer, get_credential_issuer
from app.core.notifications import NotificationSender, get_notification_sender
from app.core.session import get_current_session, set_session_cookies
from app.services import invites as invite_service
from app.services.organizations import resolve_organization_id
from app.services.store import IdentityStore, get_store
from teamhub_shared.schemas.auth import SessionDescriptor
from teamhub_shared.schemas.common import APIResponse
from teamhub_shared.schemas.invites import InviteCreateRequest, InviteRead

settings = get_settings()
router = APIRouter()


@router.get("", response_model=APIResponse)
async def list_invites(
    organization_id: Optional[uuid.UUID] = None,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    org_id = await resolve_organization_id(store, session, organization_id)
    invites = await invite_service.list_invites(store, session, org_id)
    return APIResponse(
        success=True,
        message="Invites fetched successfully",
        data=[InviteRead.model_validate(i).model_dump(mode="json") for i in invites],
    )


@router.post("", response_model=APIResponse, status_code=201)
async def create_invite(
    body: InviteCreateRequest,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
    sender: NotificationSender = Depends(get_notification_sender),
):
    org_id = await resolve_organization_id(store, session, body.organization_id)
    outcome = await invite_service.create_invite(store, issuer, sender, session, org_id, body)
    data = InviteRead.model_validate(outcome.invite).model_dump(mode="json", exclude={"token"})
    return APIResponse(success=True, message=outcome.message, data=data)


@router.get("/accept")
async def accept_invite(
    token: str,
    email: str,
    password: str,
    store: IdentityStore = Depends(get_store),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
):
    """Sign the invitee in and send them to the app with a fresh session."""
    descriptor = await invite_service.accept_invite(store, issuer, token, email, password)
    response = RedirectResponse(url=settings.app_url, status_code=303)
    set_session_cookies(response, descriptor)
    return response


@router.delete("/{invite_id}", response_model=APIResponse)
async def revoke_invite(
    invite_id: uuid.UUID,
    organization_id: Optional[uuid.UUID] = None,
    session: SessionDescriptor = Depends(get_current_session),
    store: IdentityStore = Depends(get_store),
):
    org_id = await resolve_organization_id(store, session, organization_id)
    invite = await invite_service.revoke_invite(store, session, org_id, invite_id)
    return APIResponse(
        success=True,
        message="Invitation revoked successfully",
        data={"id": str(invite.id), "status": invite.status},
    )
