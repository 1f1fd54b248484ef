"""
Invitation schemas and the invite lifecycle state machine.

An invite starts ``pending``; every other status is terminal.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from .common import InviteRole, InviteStatus


# ---------------------------------------------------------------------------
# Lifecycle transitions
# ---------------------------------------------------------------------------

INVITE_TRANSITIONS: dict[InviteStatus, list[InviteStatus]] = {
    InviteStatus.PENDING: [
        InviteStatus.ACCEPTED,
        InviteStatus.REVOKED,
        InviteStatus.EXPIRED,
    ],
    InviteStatus.ACCEPTED: [],
    InviteStatus.REVOKED: [],
    InviteStatus.EXPIRED: [],
}


def can_transition(current: InviteStatus, target: InviteStatus) -> bool:
    return target in INVITE_TRANSITIONS.get(current, [])


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class InviteCreateRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., max_length=200, description="Invitee full name")
    role: InviteRole
    organization_id: uuid.UUID
    team_id: Optional[uuid.UUID] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class InviteRead(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    inviter_id: uuid.UUID
    email: str
    role: InviteRole
    token: str
    status: InviteStatus
    expires_at: datetime
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
