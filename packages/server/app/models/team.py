"""Team and team membership models."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, TimestampMixin, UUIDMixin


class Team(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "teams"
    __table_args__ = (
        sa.UniqueConstraint("organization_id", "name", name="uq_teams_org_name"),
    )

    organization_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    slug: str = Field(nullable=False)
    description: Optional[str] = None
    created_by: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)


class TeamMember(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "team_members"
    __table_args__ = (
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    team_id: uuid.UUID = Field(foreign_key="teams.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="profiles.id", nullable=False, index=True)
    role: str = Field(nullable=False, default="member")
    added_by: uuid.UUID = Field(foreign_key="profiles.id", nullable=False)
