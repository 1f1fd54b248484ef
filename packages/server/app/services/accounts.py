"""
Account service: self-service registration and login.
"""

from __future__ import annotations

import structlog

from app.core.credentials import CredentialIssuer
from app.core.errors import NotFoundError, ValidationError
from app.core.saga import Saga
from app.models.user import Profile
from app.services.store import IdentityStore
from teamhub_shared.schemas.auth import SessionDescriptor, SignupRequest
from teamhub_shared.schemas.common import Role

log = structlog.get_logger()


async def register(
    store: IdentityStore,
    issuer: CredentialIssuer,
    req: SignupRequest,
) -> Profile:
    """Create an identity, joined to an existing organization unless it is an owner.

    Owners start without an organization and create one afterwards.
    """
    if req.role == Role.OWNER:
        if req.organization_id is not None:
            raise ValidationError("Owners cannot join an existing organization at signup")
    else:
        if req.organization_id is None:
            raise ValidationError("organization_id is required for admin and member roles")
        if await store.get_organization(req.organization_id) is None:
            raise NotFoundError("Organization not found")

    name = req.name.strip()
    if not name:
        raise ValidationError("Name is required")
    if len(req.password) < 6:
        raise ValidationError("Password must be at least 6 characters")

    async with Saga("account.register") as saga:
        profile = await saga.step(
            issuer.sign_up(req.email, req.password, name),
            compensate=lambda profile: issuer.delete_identity(profile.id),
            label="identity",
        )
        if req.organization_id is not None:
            await saga.step(
                store.insert_membership(req.organization_id, profile.id, req.role.value),
                label="organization_membership",
            )

    log.info("account.registered", profile_id=str(profile.id), role=req.role.value)
    return profile


async def authenticate(
    store: IdentityStore,
    issuer: CredentialIssuer,
    email: str,
    password: str,
) -> SessionDescriptor:
    """Sign in and build the session from the identity's oldest membership.

    An identity with no membership is an owner who has not created an
    organization yet.
    """
    tokens = await issuer.sign_in(email, password)

    profile = await store.get_profile(tokens.profile_id)
    if profile is None:
        raise NotFoundError("User profile not found")

    memberships = await store.memberships_for(profile.id)
    if memberships:
        role = Role(memberships[0].role)
        organization_id = memberships[0].organization_id
    else:
        role, organization_id = Role.OWNER, None

    log.info("auth.login_success", profile_id=str(profile.id), role=role.value)
    return SessionDescriptor(
        profile_id=profile.id,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        full_name=profile.full_name,
        role=role,
        organization_id=organization_id,
    )
