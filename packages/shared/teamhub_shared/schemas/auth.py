"""Authentication and session schemas."""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from .common import Role


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class SignupRequest(BaseModel):
    email: EmailStr
    password: str
    name: str = Field(..., max_length=200)
    role: Role
    organization_id: Optional[uuid.UUID] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class SessionDescriptor(BaseModel):
    """Client-held session contents. Immutable once decoded."""
    profile_id: uuid.UUID
    access_token: str
    refresh_token: str
    full_name: str
    role: Role
    organization_id: Optional[uuid.UUID] = None

    model_config = {"frozen": True}

    def summary(self) -> "SessionSummary":
        return SessionSummary(
            profile_id=self.profile_id,
            full_name=self.full_name,
            role=self.role,
            organization_id=self.organization_id,
        )


class SessionSummary(BaseModel):
    """The part of a session that is safe to echo back to the client."""
    profile_id: uuid.UUID
    full_name: str
    role: Role
    organization_id: Optional[uuid.UUID] = None
