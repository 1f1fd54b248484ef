"""
Organization-related Pydantic schemas shared between the server and its clients.

Covers: organization create/read, organization members and role updates.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., max_length=100, description="Organization display name")


class MemberRoleUpdateRequest(BaseModel):
    """Change the role of an existing organization member."""
    role: Role


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrganizationRead(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    owner_id: uuid.UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileSummary(BaseModel):
    id: uuid.UUID
    full_name: str


class MemberRead(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    user_id: uuid.UUID
    role: Role
    created_at: Optional[datetime] = None
    profile: Optional[ProfileSummary] = None


class OrganizationMembershipRead(OrganizationRead):
    """An organization as seen by one of its members."""
    role: Role
