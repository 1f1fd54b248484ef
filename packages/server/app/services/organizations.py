"""
Organization service: creation, listing and organization scoping.
"""

from __future__ import annotations

import re
import uuid
from typing import Optional

import structlog

from app.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.permissions import Action, require
from app.core.saga import Saga
from app.models.organization import Organization
from app.services.activity import record_activity
from app.services.store import IdentityStore
from teamhub_shared.schemas.auth import SessionDescriptor
from teamhub_shared.schemas.common import Role
from teamhub_shared.schemas.organizations import OrganizationMembershipRead

log = structlog.get_logger()

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase, collapse runs of non-alphanumerics to '-', trim the ends."""
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


async def resolve_organization_id(
    store: IdentityStore,
    session: SessionDescriptor,
    requested: Optional[uuid.UUID] = None,
) -> uuid.UUID:
    """Pick the organization a request operates on.

    An explicit ``requested`` id wins over the session's organization. Owners
    may switch to any organization they belong to; admins and members are
    pinned to the one in their session.
    """
    if requested is None or requested == session.organization_id:
        if session.organization_id is None:
            raise ValidationError("No organization found")
        return session.organization_id

    if session.role != Role.OWNER:
        raise AuthorizationError("You can only access your own organization")

    membership = await store.get_membership(requested, session.profile_id)
    if membership is None:
        raise NotFoundError("Organization not found")
    return requested


async def create_organization(
    store: IdentityStore,
    session: SessionDescriptor,
    name: str,
) -> Organization:
    """Create an organization with the caller as its owner member."""
    require(session.role, Action.CREATE_ORGANIZATION)

    name = (name or "").strip()
    if not name:
        raise ValidationError("Organization name is required")
    slug = slugify(name)
    if not slug:
        raise ValidationError("Organization name must contain letters or digits")
    if await store.slug_taken(slug):
        raise ConflictError("Organization with this name already exists")

    async with Saga("organization.create", slug=slug) as saga:
        org = await saga.step(
            store.insert_organization(name, slug, session.profile_id),
            compensate=lambda org: store.delete_organization(org.id),
            label="organization",
        )
        await saga.step(
            store.insert_membership(org.id, session.profile_id, Role.OWNER.value),
            label="owner_membership",
        )

    log.info("organization.created", organization_id=str(org.id), slug=slug)
    await record_activity(
        store,
        organization_id=org.id,
        actor_id=session.profile_id,
        action=f"Created organization {org.name}",
        action_type="organization.created",
        details={"organization_name": org.name, "slug": slug},
    )
    return org


async def list_user_organizations(
    store: IdentityStore, session: SessionDescriptor
) -> list[OrganizationMembershipRead]:
    rows = await store.list_organizations_for(session.profile_id)
    return [
        OrganizationMembershipRead(
            id=org.id,
            name=org.name,
            slug=org.slug,
            owner_id=org.owner_id,
            created_at=org.created_at,
            updated_at=org.updated_at,
            role=Role(role),
        )
        for org, role in rows
    ]
