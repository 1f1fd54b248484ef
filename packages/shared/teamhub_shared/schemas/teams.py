"""Team schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .organizations import ProfileSummary


class TeamCreateRequest(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class TeamRead(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    created_by: uuid.UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    creator: Optional[ProfileSummary] = None


class TeamMemberRead(BaseModel):
    id: uuid.UUID
    team_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    added_by: uuid.UUID
    created_at: Optional[datetime] = None
    profile: Optional[ProfileSummary] = None
