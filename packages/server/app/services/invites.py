"""
Invitation lifecycle.

    pending ──accept──▶ accepted
       │ ├──revoke──▶ revoked
       │ └──expire──▶ expired      (lazily, when acceptance comes too late)

Creating an invite provisions the invitee up front: identity, organization
membership, optional team membership, then the invite row. Those steps are
committed one at a time and undone newest-first if a later one fails.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import timedelta

import structlog

from app.core.config import get_settings
from app.core.credentials import (
    CredentialIssuer,
    generate_invite_token,
    generate_password,
    normalize_email,
)
from app.core.errors import (
    AuthenticationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    NotificationError,
    ValidationError,
)
from app.core.notifications import NotificationSender
from app.core.permissions import Action, invite_action, require
from app.core.saga import Saga
from app.models.base import as_utc, utcnow
from app.models.invite import Invite
from app.services.activity import record_activity
from app.services.store import IdentityStore
from teamhub_shared.schemas.auth import SessionDescriptor
from teamhub_shared.schemas.common import InviteStatus, Role
from teamhub_shared.schemas.invites import InviteCreateRequest, can_transition

log = structlog.get_logger()
settings = get_settings()


@dataclass(frozen=True)
class InviteOutcome:
    invite: Invite
    email_sent: bool

    @property
    def message(self) -> str:
        if self.email_sent:
            return "Invitation sent successfully"
        return "Invitation created but email failed to send"


def _ensure_transition(invite: Invite, target: InviteStatus) -> None:
    if not can_transition(InviteStatus(invite.status), target):
        raise InvalidStateError(f"Invitation is {invite.status}")


async def create_invite(
    store: IdentityStore,
    issuer: CredentialIssuer,
    sender: NotificationSender,
    session: SessionDescriptor,
    organization_id: uuid.UUID,
    req: InviteCreateRequest,
) -> InviteOutcome:
    """Provision an invitee and send them their credentials."""
    require(session.role, invite_action(req.role))

    email = normalize_email(req.email)
    name = req.name.strip()
    if not name:
        raise ValidationError("Invitee name is required")

    if req.team_id is not None and await store.get_team(organization_id, req.team_id) is None:
        raise NotFoundError("Team not found in organization")
    if await issuer.email_registered(email):
        raise ConflictError("User with this email already exists")
    if await store.pending_invite_exists(organization_id, email):
        raise ConflictError("Pending invite already exists for this email")

    password = generate_password()
    async with Saga("invite.create", organization_id=str(organization_id)) as saga:
        profile = await saga.step(
            issuer.sign_up(email, password, name),
            compensate=lambda profile: issuer.delete_identity(profile.id),
            label="identity",
        )
        await saga.step(
            store.insert_membership(organization_id, profile.id, req.role.value),
            compensate=lambda member: store.delete_membership(member.id),
            label="organization_membership",
        )
        if req.team_id is not None:
            await saga.step(
                store.insert_team_member(req.team_id, profile.id, Role.MEMBER.value, session.profile_id),
                compensate=lambda team_member: store.delete_team_member(team_member.id),
                label="team_membership",
            )
        invite = await saga.step(
            store.insert_invite(
                Invite(
                    organization_id=organization_id,
                    inviter_id=session.profile_id,
                    email=email,
                    role=req.role.value,
                    token=generate_invite_token(),
                    status=InviteStatus.PENDING.value,
                    expires_at=utcnow() + timedelta(hours=settings.invite_ttl_hours),
                )
            ),
            label="invite",
        )

    log.info("invite.created", invite_id=str(invite.id), organization_id=str(organization_id), role=invite.role)

    email_sent = True
    try:
        await sender.send_invite(email, name, password, invite.role, invite.token)
    except NotificationError:
        email_sent = False

    await record_activity(
        store,
        organization_id=organization_id,
        actor_id=session.profile_id,
        action=f"Invited {email} as {invite.role}",
        action_type="user.invited",
        details={
            "invite_id": str(invite.id),
            "email": email,
            "role": invite.role,
            "team_id": str(req.team_id) if req.team_id else None,
            "email_sent": email_sent,
        },
    )
    return InviteOutcome(invite=invite, email_sent=email_sent)


async def accept_invite(
    store: IdentityStore,
    issuer: CredentialIssuer,
    token: str,
    email: str,
    password: str,
) -> SessionDescriptor:
    """Redeem an invite link and return the session to hand to the invitee."""
    email = normalize_email(email)
    invite = await store.find_invite(token, email)
    if invite is None:
        raise NotFoundError("Invalid or expired invitation")

    if invite.status != InviteStatus.PENDING.value:
        raise ValidationError(f"Invitation is {invite.status}")

    if as_utc(invite.expires_at) < utcnow():
        await store.set_invite_status(invite, InviteStatus.EXPIRED.value)
        log.info("invite.expired", invite_id=str(invite.id))
        raise ValidationError("Invitation has expired")

    try:
        tokens = await issuer.sign_in(email, password)
    except AuthenticationError:
        raise AuthenticationError("Failed to authenticate. Invalid credentials")

    profile = await store.get_profile(tokens.profile_id)
    if profile is None:
        raise NotFoundError("User profile not found")

    membership = await store.get_membership(invite.organization_id, profile.id)
    if membership is None:
        raise NotFoundError("Organization membership not found")

    _ensure_transition(invite, InviteStatus.ACCEPTED)
    await store.set_invite_status(invite, InviteStatus.ACCEPTED.value)
    log.info("invite.accepted", invite_id=str(invite.id), profile_id=str(profile.id))
    await record_activity(
        store,
        organization_id=invite.organization_id,
        actor_id=profile.id,
        action=f"{profile.full_name} accepted the invitation",
        action_type="invite.accepted",
        details={"invite_id": str(invite.id), "role": membership.role},
    )

    return SessionDescriptor(
        profile_id=profile.id,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        full_name=profile.full_name,
        role=Role(membership.role),
        organization_id=invite.organization_id,
    )


async def revoke_invite(
    store: IdentityStore,
    session: SessionDescriptor,
    organization_id: uuid.UUID,
    invite_id: uuid.UUID,
) -> Invite:
    require(session.role, Action.REVOKE_INVITE)

    invite = await store.get_invite(organization_id, invite_id)
    if invite is None:
        raise NotFoundError("Invitation not found")
    if not can_transition(InviteStatus(invite.status), InviteStatus.REVOKED):
        raise InvalidStateError(f"Cannot revoke {invite.status} invitation")

    invite = await store.set_invite_status(invite, InviteStatus.REVOKED.value)
    log.info("invite.revoked", invite_id=str(invite.id))
    await record_activity(
        store,
        organization_id=organization_id,
        actor_id=session.profile_id,
        action=f"Revoked invitation for {invite.email}",
        action_type="invite.revoked",
        details={"invite_id": str(invite.id), "email": invite.email},
    )
    return invite


async def list_invites(
    store: IdentityStore,
    session: SessionDescriptor,
    organization_id: uuid.UUID,
) -> list[Invite]:
    require(session.role, Action.VIEW_INVITES)
    return await store.list_pending_invites(organization_id)


async def expire_stale_invites(store: IdentityStore) -> int:
    """Mark every overdue pending invite expired. Acceptance never relies on this."""
    stale = await store.stale_pending_invites()
    for invite in stale:
        await store.set_invite_status(invite, InviteStatus.EXPIRED.value)
    if stale:
        log.info("invite.expired_sweep", count=len(stale))
    return len(stale)
